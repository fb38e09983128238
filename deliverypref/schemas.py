# deliverypref/schemas.py
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from .models import DeliveryType


# -------------------
# Auth
# -------------------
class LoginIn(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8)


class SignupIn(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8)
    name: str = Field(default="Demo User", min_length=1, max_length=120)


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    name: str


class LoginOut(BaseModel):
    token: str
    user: UserOut


# -------------------
# Orders
# -------------------
class OrderOut(BaseModel):
    """Order as returned to clients (camelCase keys)."""

    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)

    id: str
    user_id: str
    delivery_type: DeliveryType
    scheduled_time: datetime
    delivery_address: Optional[str] = None
    pickup_person: Optional[str] = None
    curbside_vehicle_info: Optional[str] = None
    contact_phone: str
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @field_validator("scheduled_time", "created_at", "updated_at")
    @classmethod
    def _utc(cls, v: datetime) -> datetime:
        # SQLite hands back naive datetimes; everything is stored as UTC.
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v


class HealthOut(BaseModel):
    status: str = "ok"
