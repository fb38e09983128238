# deliverypref/ordering/validation.py
"""
Order validation and update merging.

Everything here is pure: callers pass the raw wire payload (camelCase keys)
and the instant to validate against. A valid payload becomes an OrderDraft
whose fulfillment variant carries exactly the field its delivery type
requires; an invalid one raises ValidationError listing every violated rule.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, ClassVar, Dict, List, Mapping, Optional, Tuple, Type, Union

from ..errors import FieldError, ValidationError
from ..models import DeliveryType

ORDER_FIELDS: Tuple[str, ...] = (
    "deliveryType",
    "scheduledTime",
    "contactPhone",
    "deliveryAddress",
    "pickupPerson",
    "curbsideVehicleInfo",
    "notes",
)

MIN_PHONE_LENGTH = 10

MAX_LENGTHS: Dict[str, int] = {
    "deliveryAddress": 255,
    "pickupPerson": 120,
    "curbsideVehicleInfo": 255,
    "notes": 500,
}


# ----------------------------
# Fulfillment variants
# ----------------------------
@dataclass(frozen=True)
class InStorePickup:
    pickup_person: str
    delivery_type: ClassVar[DeliveryType] = DeliveryType.IN_STORE


@dataclass(frozen=True)
class HomeDelivery:
    delivery_address: str
    delivery_type: ClassVar[DeliveryType] = DeliveryType.DELIVERY


@dataclass(frozen=True)
class CurbsidePickup:
    curbside_vehicle_info: str
    delivery_type: ClassVar[DeliveryType] = DeliveryType.CURBSIDE


Fulfillment = Union[InStorePickup, HomeDelivery, CurbsidePickup]

# delivery type -> (wire field it requires, variant built from it)
REQUIRED_FIELD: Dict[DeliveryType, Tuple[str, Type[Any]]] = {
    DeliveryType.IN_STORE: ("pickupPerson", InStorePickup),
    DeliveryType.DELIVERY: ("deliveryAddress", HomeDelivery),
    DeliveryType.CURBSIDE: ("curbsideVehicleInfo", CurbsidePickup),
}


@dataclass(frozen=True)
class OrderDraft:
    scheduled_time: datetime
    contact_phone: str
    fulfillment: Fulfillment
    notes: Optional[str] = None

    @property
    def delivery_type(self) -> DeliveryType:
        return self.fulfillment.delivery_type

    def as_columns(self) -> Dict[str, Any]:
        """Column values for the orders table; the unused conditional fields are None."""
        cols: Dict[str, Any] = {
            "delivery_type": self.delivery_type,
            "scheduled_time": self.scheduled_time,
            "contact_phone": self.contact_phone,
            "notes": self.notes,
            "delivery_address": None,
            "pickup_person": None,
            "curbside_vehicle_info": None,
        }
        cols.update(asdict(self.fulfillment))
        return cols


# ----------------------------
# Helpers
# ----------------------------
def _as_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_instant(value: Any) -> Optional[datetime]:
    """ISO 8601 string or datetime -> aware UTC datetime. Naive values are taken as UTC.

    Returns None for anything unparseable, including instants whose UTC
    equivalent falls outside the supported date range.
    """
    if isinstance(value, str) and value.strip():
        try:
            value = datetime.fromisoformat(value.strip())
        except ValueError:
            return None
    if not isinstance(value, datetime):
        return None
    try:
        return _as_utc(value)
    except OverflowError:
        return None


def merge_order_fields(existing: Mapping[str, Any], partial: Mapping[str, Any]) -> Dict[str, Any]:
    """Per field: the partial value when given (not None), else the existing one."""
    merged: Dict[str, Any] = {}
    for field in ORDER_FIELDS:
        value = partial.get(field)
        merged[field] = value if value is not None else existing.get(field)
    return merged


# ----------------------------
# Rules
# ----------------------------
def _check(data: Mapping[str, Any], now: datetime) -> OrderDraft:
    now = _as_utc(now)
    errors: List[FieldError] = []

    delivery_type: Optional[DeliveryType] = None
    raw_type = data.get("deliveryType")
    if raw_type is None:
        errors.append(FieldError("deliveryType", "deliveryType is required"))
    else:
        try:
            delivery_type = DeliveryType(raw_type)
        except (ValueError, TypeError):
            allowed = ", ".join(t.value for t in DeliveryType)
            errors.append(FieldError("deliveryType", f"deliveryType must be one of {allowed}"))

    scheduled: Optional[datetime] = None
    raw_time = data.get("scheduledTime")
    if raw_time is None:
        errors.append(FieldError("scheduledTime", "scheduledTime is required"))
    else:
        scheduled = parse_instant(raw_time)
        if scheduled is None:
            errors.append(FieldError("scheduledTime", "scheduledTime must be a valid ISO date"))
        elif scheduled <= now:
            errors.append(FieldError("scheduledTime", "scheduledTime must be in the future"))

    phone = data.get("contactPhone")
    if phone is None:
        errors.append(FieldError("contactPhone", "contactPhone is required"))
    elif not isinstance(phone, str):
        errors.append(FieldError("contactPhone", "contactPhone must be a string"))
    elif len(phone) < MIN_PHONE_LENGTH:
        errors.append(FieldError("contactPhone", f"contactPhone must be at least {MIN_PHONE_LENGTH} digits"))

    for path, limit in MAX_LENGTHS.items():
        value = data.get(path)
        if value is None:
            continue
        if not isinstance(value, str):
            errors.append(FieldError(path, f"{path} must be a string"))
        elif len(value) > limit:
            errors.append(FieldError(path, f"{path} must be at most {limit} characters"))

    fulfillment: Optional[Fulfillment] = None
    if delivery_type is not None:
        path, variant = REQUIRED_FIELD[delivery_type]
        value = data.get(path)
        if value is None or value == "":
            errors.append(FieldError(path, f"{path} is required for {delivery_type.value}"))
        elif isinstance(value, str) and len(value) <= MAX_LENGTHS[path]:
            fulfillment = variant(value)

    if errors:
        raise ValidationError(errors)

    return OrderDraft(
        scheduled_time=scheduled,
        contact_phone=phone,
        fulfillment=fulfillment,
        notes=data.get("notes"),
    )


def validate_for_create(data: Mapping[str, Any], now: datetime) -> OrderDraft:
    return _check(data, now)


def validate_for_update(existing: Mapping[str, Any], partial: Mapping[str, Any], now: datetime) -> OrderDraft:
    """
    Merge `partial` over `existing` and run the create rules on the result.
    The merged scheduledTime must still be in the future, even if the
    caller did not send one.
    """
    return _check(merge_order_fields(existing, partial), now)
