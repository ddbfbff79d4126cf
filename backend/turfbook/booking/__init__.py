from turfbook.booking.availability import (
    DEFAULT_CLOSED_WINDOW,
    BookedSlot,
    ClosedWindow,
    find_conflicting_bookings,
    is_available,
    is_closed,
)
from turfbook.booking.cart import (
    BookingFormArgs,
    Cart,
    CartItem,
    SlotQueryArgs,
    add_to_cart,
    build_cart_item,
    cart_totals,
    map_validation_error,
    parse_booking_form_args,
    parse_cart_items,
    remove_from_cart,
)
from turfbook.booking.pricing import RateSchedule, calculate_price, default_rate_schedule
from turfbook.booking.reservations import (
    check_cart_conflicts,
    fetch_bookings_for_window,
    find_court,
    find_unknown_court_ids,
    list_active_courts,
    list_available_courts,
    reserve_cart,
)

__all__ = [
    "DEFAULT_CLOSED_WINDOW",
    "BookedSlot",
    "ClosedWindow",
    "find_conflicting_bookings",
    "is_available",
    "is_closed",
    "BookingFormArgs",
    "Cart",
    "CartItem",
    "SlotQueryArgs",
    "add_to_cart",
    "build_cart_item",
    "cart_totals",
    "map_validation_error",
    "parse_booking_form_args",
    "parse_cart_items",
    "remove_from_cart",
    "RateSchedule",
    "calculate_price",
    "default_rate_schedule",
    "check_cart_conflicts",
    "fetch_bookings_for_window",
    "find_court",
    "find_unknown_court_ids",
    "list_active_courts",
    "list_available_courts",
    "reserve_cart",
]
