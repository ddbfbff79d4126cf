from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from turfbook.booking.time_utils import (
    crosses_midnight,
    format_time_for_display,
    parse_date,
    split_at_midnight,
)
from turfbook.db.models import Booking


BookingStatus = Literal["pending", "approved", "rejected"]


class ListBookingsArgs(BaseModel):
    dates: list[str] | None = None
    status: BookingStatus | None = None

    @field_validator("dates")
    @classmethod
    def validate_dates(cls, value: list[str] | None) -> list[str] | None:
        if value is None:
            return None
        return [parse_date(item).isoformat() for item in value]


def booking_status(booking: Booking) -> BookingStatus:
    if booking.is_approved is None:
        return "pending"
    return "approved" if booking.is_approved else "rejected"


def list_bookings(db: Session, args: ListBookingsArgs) -> list[Booking]:
    bookings = db.query(Booking).all()
    if args.dates:
        bookings = [b for b in bookings if b.date in args.dates]
    if args.status:
        bookings = [b for b in bookings if booking_status(b) == args.status]
    return sorted(bookings, key=lambda b: (b.date, b.start_time, b.id))


def find_booking(db: Session, booking_id: int) -> Booking | None:
    for booking in db.query(Booking).all():
        if booking.id == booking_id:
            return booking
    return None


def approve_booking(db: Session, booking_id: int) -> Booking | None:
    return _set_approval(db=db, booking_id=booking_id, approved=True)


def reject_booking(db: Session, booking_id: int) -> Booking | None:
    return _set_approval(db=db, booking_id=booking_id, approved=False)


def delete_booking(db: Session, booking_id: int) -> bool:
    booking = find_booking(db=db, booking_id=booking_id)
    if booking is None:
        return False
    db.delete(booking)
    db.commit()
    return True


def serialize_booking(booking: Booking) -> dict[str, Any]:
    return {
        "id": booking.id,
        "customer_name": booking.customer_name,
        "sport": booking.sport,
        "people_count": booking.people_count,
        "date": booking.date,
        "start_time": booking.start_time,
        "end_time": booking.end_time,
        "start_time_display": format_time_for_display(booking.start_time),
        "end_time_display": format_time_for_display(booking.end_time),
        "duration": booking.duration,
        "crosses_midnight": crosses_midnight(booking.start_time, booking.end_time),
        "segments": split_at_midnight(booking.date, booking.start_time, booking.duration / 60),
        "court_id": booking.court_id,
        "price": booking.price,
        "is_approved": booking.is_approved,
        "status": booking_status(booking),
        "created_at": booking.created_at.isoformat() if booking.created_at else None,
    }


def _set_approval(db: Session, booking_id: int, approved: bool) -> Booking | None:
    booking = find_booking(db=db, booking_id=booking_id)
    if booking is None:
        return None
    booking.is_approved = approved
    db.commit()
    return booking
