from sqlalchemy import Column, Integer, String, JSON
from abn.core.database import Base


class View(Base):
    __tablename__ = "view"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    properties = Column(JSON, nullable=False, default=list)  # noms des props projetées, dans l'ordre
    filter = Column(JSON, nullable=False)  # arbre de filtre sérialisé (cf. abn.schemas.filter)
