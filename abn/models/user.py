"""Credentials only: no route checks them (single-tenant server)."""

from sqlalchemy import Column, Integer, String
from abn.core.database import Base
import bcrypt


class User(Base):
    __tablename__ = "user"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, nullable=False, index=True)
    # hash bcrypt, jamais le mot de passe en clair
    password_hash = Column(String, nullable=False)

    @classmethod
    def with_password(cls, email: str, password: str) -> "User":
        user = cls(email=email.strip().lower())
        user.set_password(password)
        return user

    def set_password(self, password: str):
        self.password_hash = bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()

    def verify_password(self, password: str) -> bool:
        return bcrypt.checkpw(password.encode(), self.password_hash.encode())
