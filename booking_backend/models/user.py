"""
Account aggregate — users, roles, refresh tokens and postal addresses.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime

from sqlalchemy import (Boolean, Column, Date, DateTime, ForeignKey, Index,
                        String, Table, Text, Uuid, text)
from sqlalchemy.orm import relationship

from booking_backend.db.base import Base, TimestampMixin

user_roles = Table(
    "user_roles",
    Base.metadata,
    Column("user_id", Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("role_id", Uuid, ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
)


class Role(TimestampMixin, Base):
    __tablename__ = "roles"

    name: str = Column(String(64), nullable=False)  # type: ignore[assignment]
    normalized_name: str = Column(String(64), nullable=False, index=True)  # type: ignore[assignment]


class User(TimestampMixin, Base):
    __tablename__ = "users"
    __table_args__ = (
        # Email is unique among live accounts; archived ones free it up.
        Index(
            "uq_users_email_active",
            "email",
            unique=True,
            postgresql_where=text("archived_at IS NULL"),
            sqlite_where=text("archived_at IS NULL"),
        ),
    )
    __hidden_fields__ = ("hashed_password", "security_stamp")

    email: str = Column(String(320), nullable=False, index=True)  # type: ignore[assignment]
    username: str = Column(String(320), nullable=False)  # type: ignore[assignment]
    hashed_password: str = Column(String(128), nullable=False)  # type: ignore[assignment]
    first_name: str = Column(String(64), nullable=False)  # type: ignore[assignment]
    last_name: str = Column(String(64), nullable=False)  # type: ignore[assignment]
    date_of_birth: date | None = Column(Date, nullable=True)  # type: ignore[assignment]
    title: str | None = Column(String(128), nullable=True)  # type: ignore[assignment]
    description: str | None = Column(Text, nullable=True)  # type: ignore[assignment]
    accept_terms: bool = Column(Boolean, nullable=False, default=False)  # type: ignore[assignment]
    accept_marketing: bool = Column(Boolean, nullable=False, default=False)  # type: ignore[assignment]
    email_confirmed: bool = Column(Boolean, nullable=False, default=False)  # type: ignore[assignment]
    security_stamp: str = Column(String(64), nullable=False)  # type: ignore[assignment]

    status_id: uuid.UUID = Column(Uuid, ForeignKey("statuses.id"), nullable=False)  # type: ignore[assignment]
    gender_id: uuid.UUID = Column(Uuid, ForeignKey("genders.id"), nullable=False)  # type: ignore[assignment]

    status = relationship("StatusAccount", lazy="selectin")
    gender = relationship("Gender", lazy="selectin")
    roles = relationship("Role", secondary=user_roles, lazy="selectin")
    addresses = relationship("Address", back_populates="user")

    @property
    def role_names(self) -> list[str]:
        return sorted(r.name for r in self.roles if r.archived_at is None)

    def has_role(self, *names: str) -> bool:
        wanted = {n.upper() for n in names}
        return any(r.normalized_name in wanted for r in self.roles if r.archived_at is None)


class RefreshToken(Base):
    __tablename__ = "refresh_tokens"

    id: uuid.UUID = Column(Uuid, primary_key=True, default=uuid.uuid4)  # type: ignore[assignment]
    token: str = Column(String(256), nullable=False, unique=True, index=True)  # type: ignore[assignment]
    user_id: uuid.UUID = Column(  # type: ignore[assignment]
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    expiration_date: datetime = Column(DateTime(timezone=True), nullable=False)  # type: ignore[assignment]

    user = relationship("User", lazy="selectin")


class Address(TimestampMixin, Base):
    __tablename__ = "addresses"

    street: str = Column(String(128), nullable=False)  # type: ignore[assignment]
    city: str = Column(String(64), nullable=False)  # type: ignore[assignment]
    state: str = Column(String(64), nullable=False)  # type: ignore[assignment]
    country: str = Column(String(64), nullable=False)  # type: ignore[assignment]
    zip_code: str = Column(String(16), nullable=False)  # type: ignore[assignment]
    user_id: uuid.UUID = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)  # type: ignore[assignment]

    user = relationship("User", back_populates="addresses")
