"""
Slot, Booking & Order models.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (CheckConstraint, Column, DateTime, ForeignKey, Index,
                        Integer, Numeric, String, Text, Uuid, text)
from sqlalchemy.orm import relationship

from booking_backend.db.base import Base, TimestampMixin


class Slot(TimestampMixin, Base):
    __tablename__ = "slots"
    __table_args__ = (
        CheckConstraint("date_to > date_from", name="ck_slot_window"),
        Index("ix_slot_teacher_window", "teacher_id", "date_from", "date_to"),
    )

    date_from: datetime = Column(DateTime(timezone=True), nullable=False, index=True)  # type: ignore[assignment]
    date_to: datetime = Column(DateTime(timezone=True), nullable=False)  # type: ignore[assignment]
    type_id: uuid.UUID = Column(Uuid, ForeignKey("type_slots.id"), nullable=False)  # type: ignore[assignment]
    teacher_id: uuid.UUID = Column(Uuid, ForeignKey("users.id"), nullable=False)  # type: ignore[assignment]

    type = relationship("TypeSlot", lazy="selectin")
    teacher = relationship("User", lazy="selectin")
    bookings = relationship("Booking", back_populates="slot", lazy="selectin")

    @property
    def active_booking(self) -> "Booking | None":
        return next((b for b in self.bookings if b.archived_at is None), None)

    @property
    def is_booked(self) -> bool:
        return self.active_booking is not None


class Order(TimestampMixin, Base):
    __tablename__ = "orders"
    __table_args__ = (
        CheckConstraint("total_amount >= 0", name="ck_order_total"),
        CheckConstraint(
            "reduction_amount >= 0 AND reduction_amount <= total_amount",
            name="ck_order_reduction_amount",
        ),
        CheckConstraint(
            "reduction_percentage >= 0 AND reduction_percentage <= 100",
            name="ck_order_reduction_percentage",
        ),
    )

    student_id: uuid.UUID = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)  # type: ignore[assignment]
    total_amount: Decimal = Column(Numeric(18, 2), nullable=False, default=0)  # type: ignore[assignment]
    reduction_amount: Decimal = Column(Numeric(18, 2), nullable=False, default=0)  # type: ignore[assignment]
    reduction_percentage: int = Column(Integer, nullable=False, default=0)  # type: ignore[assignment]

    student = relationship("User", lazy="selectin")
    bookings = relationship("Booking", back_populates="order", lazy="selectin")

    @property
    def active_bookings(self) -> list["Booking"]:
        return [b for b in self.bookings if b.archived_at is None]

    @property
    def final_amount(self) -> Decimal:
        """Total minus the flat reduction, then minus the percentage, never below zero."""
        total = Decimal(self.total_amount or 0)
        after_flat = total - Decimal(self.reduction_amount or 0)
        after_pct = after_flat * (Decimal(100) - Decimal(self.reduction_percentage or 0)) / Decimal(100)
        return max(after_pct, Decimal(0)).quantize(Decimal("0.01"))


class Booking(TimestampMixin, Base):
    __tablename__ = "bookings"
    __table_args__ = (
        # A slot carries at most one live booking; cancelled ones are archived.
        Index(
            "uq_booking_active_slot",
            "slot_id",
            unique=True,
            postgresql_where=text("archived_at IS NULL"),
            sqlite_where=text("archived_at IS NULL"),
        ),
    )

    title: str = Column(String(128), nullable=False)  # type: ignore[assignment]
    description: str = Column(Text, nullable=False, default="")  # type: ignore[assignment]
    slot_id: uuid.UUID = Column(Uuid, ForeignKey("slots.id"), nullable=False)  # type: ignore[assignment]
    order_id: uuid.UUID = Column(Uuid, ForeignKey("orders.id"), nullable=False, index=True)  # type: ignore[assignment]
    student_id: uuid.UUID = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)  # type: ignore[assignment]

    slot = relationship("Slot", back_populates="bookings", lazy="selectin")
    order = relationship("Order", back_populates="bookings", lazy="selectin")
    student = relationship("User", lazy="selectin")
