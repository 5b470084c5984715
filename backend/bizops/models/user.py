from sqlalchemy import Column, Integer, String, DateTime, Boolean
from sqlalchemy.sql import func
from bizops.db.base import Base


class User(Base):
    """A seller, identified by the Telegram account that talks to the bot."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    telegram_id = Column(String(64), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=True)
    username = Column(String(255), nullable=True)
    role = Column(String(32), nullable=False, default="seller")
    active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
