# deliverypref/ordering/service.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Mapping, Optional

from sqlalchemy.orm import Session

from ..errors import NotFound
from ..models import Order
from .validation import validate_for_create, validate_for_update

logger = logging.getLogger(__name__)


def order_fields(order: Order) -> Dict[str, Any]:
    """Persisted order -> wire-keyed mapping the validator understands."""
    return {
        "deliveryType": order.delivery_type.value if order.delivery_type else None,
        "scheduledTime": order.scheduled_time,
        "contactPhone": order.contact_phone,
        "deliveryAddress": order.delivery_address,
        "pickupPerson": order.pickup_person,
        "curbsideVehicleInfo": order.curbside_vehicle_info,
        "notes": order.notes,
    }


def find_owned_order(db: Session, user_id: str, order_id: str) -> Optional[Order]:
    return (
        db.query(Order)
        .filter(Order.id == order_id, Order.user_id == user_id)
        .first()
    )


def get_order(db: Session, user_id: str, order_id: str) -> Order:
    # Someone else's order looks exactly like a missing one.
    order = find_owned_order(db, user_id, order_id)
    if not order:
        raise NotFound("Order not found")
    return order


def create_order(db: Session, user_id: str, payload: Mapping[str, Any], now: datetime) -> Order:
    draft = validate_for_create(payload, now)

    order = Order(user_id=user_id, created_at=now, updated_at=now, **draft.as_columns())
    db.add(order)
    db.commit()
    db.refresh(order)

    logger.info(f"Order {order.id} created for user {user_id} ({order.delivery_type.value})")
    return order


def update_order(db: Session, user_id: str, order_id: str, payload: Mapping[str, Any], now: datetime) -> Order:
    order = get_order(db, user_id, order_id)

    # Raises before any attribute is touched, so a rejected update writes nothing.
    draft = validate_for_update(order_fields(order), payload, now)

    for column, value in draft.as_columns().items():
        setattr(order, column, value)
    order.updated_at = now

    db.add(order)
    db.commit()
    db.refresh(order)

    logger.info(f"Order {order.id} updated for user {user_id}")
    return order
