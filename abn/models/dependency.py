from sqlalchemy import Column, Integer, ForeignKey
from abn.core.database import Base


class Dependency(Base):
    __tablename__ = "dependency"

    # task_id depends on depends_on_id (self loops allowed)
    task_id = Column(Integer, ForeignKey("task.id", ondelete="CASCADE"), primary_key=True)
    depends_on_id = Column(Integer, ForeignKey("task.id", ondelete="CASCADE"), primary_key=True, index=True)
