from __future__ import annotations

import json
import logging
from typing import Any

from sqlalchemy.orm import Session

from turfbook.booking.availability import is_available
from turfbook.booking.cart import CartItem
from turfbook.booking.pricing import RateSchedule, calculate_price
from turfbook.booking.time_utils import surrounding_dates
from turfbook.db.models import Booking, Court

logger = logging.getLogger("turfbook.booking.reservations")

CONFLICT_MESSAGE = (
    "Someone else booked a conflicting slot recently. Please select a different time."
)


def fetch_bookings_for_window(db: Session, court_id: int, day: Any) -> list[Booking]:
    dates = list(surrounding_dates(day))
    return (
        db.query(Booking)
        .filter(Booking.court_id == court_id)
        .filter(Booking.date.in_(dates))
        .filter(Booking.is_approved.is_not(False))
        .all()
    )


def find_court(db: Session, court_id: int) -> Court | None:
    return db.query(Court).filter(Court.id == court_id).first()


def find_unknown_court_ids(db: Session, items: list[CartItem]) -> list[int]:
    """Court ids referenced by the cart that are missing or inactive."""
    active = {court.id for court in list_active_courts(db)}
    return sorted({item.court_id for item in items if item.court_id not in active})


def find_unavailable_items(db: Session, items: list[CartItem]) -> list[CartItem]:
    """Cart items that can no longer be booked.

    Each item is checked against freshly queried bookings plus the items ahead
    of it in the same cart, so a cart cannot double-book itself.
    """
    unavailable: list[CartItem] = []
    accepted: list[CartItem] = []
    for item in items:
        existing = fetch_bookings_for_window(db=db, court_id=item.court_id, day=item.date)
        existing.extend(earlier for earlier in accepted if earlier.court_id == item.court_id)
        if is_available(item.date, item.start_time, item.duration, existing):
            accepted.append(item)
        else:
            unavailable.append(item)
    return unavailable


def check_cart_conflicts(db: Session, items: list[CartItem]) -> dict[str, Any]:
    if not items:
        return {
            "ok": False,
            "error_code": "EMPTY_CART",
            "human_message": "No cart items provided.",
        }

    missing_courts = find_unknown_court_ids(db=db, items=items)
    if missing_courts:
        return _court_not_found(missing_courts)

    unavailable = find_unavailable_items(db=db, items=items)
    if unavailable:
        return {
            "ok": False,
            "error_code": "SLOT_CONFLICT",
            "human_message": "Booking conflicts detected.",
            "data": {"conflicts": [item.model_dump() for item in unavailable]},
        }
    return {"ok": True, "data": {"conflicts": []}}


def reserve_cart(
    db: Session,
    items: list[CartItem],
    rate_schedule: RateSchedule | None = None,
) -> dict[str, Any]:
    if not items:
        return {
            "ok": False,
            "error_code": "EMPTY_CART",
            "human_message": "No cart items provided.",
        }

    missing_courts = find_unknown_court_ids(db=db, items=items)
    if missing_courts:
        return _court_not_found(missing_courts)

    # Check-then-act: nothing below stops a concurrent request from inserting
    # between this check and the commit.
    unavailable = find_unavailable_items(db=db, items=items)
    if unavailable:
        logger.info(
            json.dumps(
                {
                    "event": "reservation_conflict",
                    "slots": [
                        f"{item.court_id}|{item.date}|{item.start_time}" for item in unavailable
                    ],
                }
            )
        )
        return {
            "ok": False,
            "error_code": "SLOT_CONFLICT",
            "human_message": CONFLICT_MESSAGE,
            "data": {"conflicts": [item.model_dump() for item in unavailable]},
        }

    created: list[Booking] = []
    for item in items:
        price = calculate_price(item.date, item.start_time, item.duration, rate_schedule)
        if price != item.price:
            logger.warning(
                "Cart price %s differs from server price %s for court_id=%s date=%s start=%s",
                item.price,
                price,
                item.court_id,
                item.date,
                item.start_time,
            )
        booking = Booking(
            customer_name=item.customer_name,
            sport=item.sport,
            people_count=item.people_count,
            date=item.date,
            start_time=item.start_time,
            end_time=item.end_time,
            duration=round(item.duration * 60),
            court_id=item.court_id,
            price=price,
            is_approved=None,
        )
        db.add(booking)
        created.append(booking)

    db.commit()
    logger.info(
        json.dumps(
            {
                "event": "reservation_created",
                "booking_ids": [booking.id for booking in created],
            }
        )
    )
    return {
        "ok": True,
        "data": {
            "bookings": [
                {
                    "booking_id": booking.id,
                    "court_id": booking.court_id,
                    "date": booking.date,
                    "start_time": booking.start_time,
                    "end_time": booking.end_time,
                    "price": booking.price,
                    "status": "pending",
                }
                for booking in created
            ],
            "total": sum(booking.price for booking in created),
        },
    }


def _court_not_found(court_ids: list[int]) -> dict[str, Any]:
    return {
        "ok": False,
        "error_code": "COURT_NOT_FOUND",
        "human_message": "Court not found.",
        "data": {"court_ids": court_ids},
    }


def list_active_courts(db: Session) -> list[Court]:
    return sorted((c for c in db.query(Court).all() if c.is_active), key=lambda c: c.id)


def list_available_courts(
    db: Session,
    day: Any,
    start_time: str,
    duration_hours: float,
) -> list[Court]:
    return [
        court
        for court in list_active_courts(db)
        if is_available(
            day,
            start_time,
            duration_hours,
            fetch_bookings_for_window(db=db, court_id=court.id, day=day),
        )
    ]


def serialize_court(court: Court) -> dict[str, Any]:
    return {"id": court.id, "name": court.name, "is_active": court.is_active}
