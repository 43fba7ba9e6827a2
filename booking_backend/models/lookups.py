"""
Lookup tables: genders, account statuses and slot types.
"""

from __future__ import annotations

from booking_backend.db.base import Base, LookupMixin


class Gender(LookupMixin, Base):
    __tablename__ = "genders"


class StatusAccount(LookupMixin, Base):
    __tablename__ = "statuses"


class TypeSlot(LookupMixin, Base):
    __tablename__ = "type_slots"
