from turfbook.admin.bookings import (
    ListBookingsArgs,
    approve_booking,
    booking_status,
    delete_booking,
    find_booking,
    list_bookings,
    reject_booking,
    serialize_booking,
)

__all__ = [
    "ListBookingsArgs",
    "approve_booking",
    "booking_status",
    "delete_booking",
    "find_booking",
    "list_bookings",
    "reject_booking",
    "serialize_booking",
]
