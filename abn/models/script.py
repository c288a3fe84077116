"""Script model (opaque blobs) and task -> script links"""

from sqlalchemy import Column, Integer, Text, ForeignKey
from abn.core.database import Base


class Script(Base):
    __tablename__ = "script"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, index=True)
    content = Column(Text, nullable=False, default="")


class TaskScript(Base):
    __tablename__ = "task_script"

    task_id = Column(Integer, ForeignKey("task.id", ondelete="CASCADE"), primary_key=True)
    # pas de FK: l'existence du script n'est pas vérifiée
    script_id = Column(Integer, primary_key=True)
