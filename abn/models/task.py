"""Task model"""

from sqlalchemy import Column, Integer, String, DateTime, Boolean
from sqlalchemy.orm import relationship
from datetime import datetime
from abn.core.database import Base


class Task(Base):
    __tablename__ = "task"
    # AUTOINCREMENT: SQLite ne réutilise jamais un id supprimé
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, index=True)

    title = Column(String, nullable=False)
    completed = Column(Boolean, nullable=False, default=False)
    last_edited = Column(DateTime, nullable=False, default=datetime.now)

    properties = relationship(
        "TaskProperty",
        cascade="all, delete-orphan",
        order_by="TaskProperty.name",
    )
    dependencies = relationship(
        "Dependency",
        foreign_keys="Dependency.task_id",
        cascade="all, delete-orphan",
        order_by="Dependency.depends_on_id",
    )
    # edges pointing at this task, removed with it
    dependents = relationship(
        "Dependency",
        foreign_keys="Dependency.depends_on_id",
        cascade="all, delete-orphan",
    )
    scripts = relationship(
        "TaskScript",
        cascade="all, delete-orphan",
        order_by="TaskScript.script_id",
    )

    def touch(self):
        self.last_edited = datetime.now()
