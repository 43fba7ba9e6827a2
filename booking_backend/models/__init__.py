"""Import every model so ``Base.metadata`` sees all tables."""

from booking_backend.models.lookups import Gender, StatusAccount, TypeSlot
from booking_backend.models.scheduling import Booking, Order, Slot
from booking_backend.models.user import Address, RefreshToken, Role, User, user_roles

__all__ = [
    "Address",
    "Booking",
    "Gender",
    "Order",
    "RefreshToken",
    "Role",
    "Slot",
    "StatusAccount",
    "TypeSlot",
    "User",
    "user_roles",
]
