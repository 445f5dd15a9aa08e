import enum

from sqlalchemy import Boolean, Column, DateTime, Integer, String
from sqlalchemy.sql import func

from hardware_store.database import Base


class Role(str, enum.Enum):
    """Closed set of permission labels; membership is checked exactly, never by rank."""

    MANAGER = "MANAGER"
    PURCHASE_OFFICER = "PURCHASE_OFFICER"
    PAYMENT_OFFICER = "PAYMENT_OFFICER"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    username = Column(String(50), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(30), nullable=False)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
