"""User model definitions."""

from sqlalchemy import Column, Integer, String
from scheduler.database import Base


class User(Base):
    """The host who owns event types and availability."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, default="")
    email = Column(String, nullable=False, default="")
    username = Column(String, unique=True, index=True, nullable=False)
    timezone = Column(String, nullable=False, default="UTC")
