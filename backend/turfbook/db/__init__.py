from turfbook.db.base import Base
from turfbook.db.models import Booking, Court

__all__ = [
    "Base",
    "Booking",
    "Court",
]
