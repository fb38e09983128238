# deliverypref/models.py
from __future__ import annotations

import enum
from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Column, DateTime, Enum as SQLEnum, ForeignKey, String, Text
from sqlalchemy.orm import relationship

from .db import Base


def _new_id() -> str:
    return str(uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DeliveryType(str, enum.Enum):
    IN_STORE = "IN_STORE"
    DELIVERY = "DELIVERY"
    CURBSIDE = "CURBSIDE"


class User(Base):
    __tablename__ = "users"
    id = Column(String(36), primary_key=True, default=_new_id)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    name = Column(String(120), nullable=False, default="Demo User")
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    orders = relationship("Order", back_populates="user", cascade="all, delete-orphan", passive_deletes=True)


class Order(Base):
    __tablename__ = "orders"
    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    delivery_type = Column(SQLEnum(DeliveryType, name="delivery_type"), nullable=False)
    scheduled_time = Column(DateTime(timezone=True), nullable=False)
    delivery_address = Column(String(255), nullable=True)
    pickup_person = Column(String(120), nullable=True)
    curbside_vehicle_info = Column(String(255), nullable=True)
    contact_phone = Column(Text, nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    user = relationship("User", back_populates="orders")
