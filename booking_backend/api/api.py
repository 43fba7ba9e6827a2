"""
API router aggregator — wires all endpoint modules together.
"""

from fastapi import APIRouter

from booking_backend.api.endpoints import (addresses, auth, bookings, health,
                                           lookups, orders, roles, slots,
                                           users)

api_router = APIRouter()

# Auth (register, login, refresh, confirmation, password reset, profile)
api_router.include_router(auth.router)

# Administration
api_router.include_router(users.router)
api_router.include_router(roles.router)
api_router.include_router(lookups.router)
api_router.include_router(addresses.router)

# Scheduling
api_router.include_router(slots.router)
api_router.include_router(orders.router)
api_router.include_router(bookings.router)

api_router.include_router(health.router)
