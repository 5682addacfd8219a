"""SQLAlchemy models shared across all services."""
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Enum as SqlEnum,
    Float,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from .database import Base


def utcnow() -> datetime:
    """Current time as a naive UTC datetime, the form every column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class RoleEnum(str, Enum):
    USER = "user"
    ADMIN = "admin"


class RoomType(str, Enum):
    SINGLE = "single"
    DOUBLE = "double"
    SUITE = "suite"


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(100))
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    phone: Mapped[Optional[str]] = mapped_column(String(30), default=None)
    hashed_password: Mapped[str] = mapped_column(String(255))
    role: Mapped[RoleEnum] = mapped_column(SqlEnum(RoleEnum), default=RoleEnum.USER)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


class Hotel(Base):
    __tablename__ = "hotels"
    __table_args__ = (
        CheckConstraint("price_per_night >= 0", name="ck_hotels_price_non_negative"),
        CheckConstraint("rating >= 0 AND rating <= 5", name="ck_hotels_rating_range"),
        CheckConstraint("total_rooms >= 1", name="ck_hotels_total_rooms_positive"),
        CheckConstraint("available_rooms >= 0", name="ck_hotels_available_rooms_non_negative"),
        CheckConstraint("available_rooms <= total_rooms", name="ck_hotels_available_within_total"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(200))
    city: Mapped[str] = mapped_column(String(100), index=True)
    address: Mapped[str] = mapped_column(String(255))
    description: Mapped[str] = mapped_column(Text)
    price_per_night: Mapped[float] = mapped_column(Float, index=True)
    rating: Mapped[float] = mapped_column(Float, default=0)
    images: Mapped[list[str]] = mapped_column(JSON, default=list)
    amenities: Mapped[list[str]] = mapped_column(JSON, default=list)
    total_rooms: Mapped[int] = mapped_column(Integer)
    available_rooms: Mapped[int] = mapped_column(Integer)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)


class Room(Base):
    __tablename__ = "rooms"
    __table_args__ = (
        CheckConstraint("price_per_night >= 0", name="ck_rooms_price_non_negative"),
        CheckConstraint("max_guests >= 1", name="ck_rooms_capacity_positive"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    hotel_id: Mapped[int] = mapped_column(ForeignKey("hotels.id"), index=True)
    room_number: Mapped[str] = mapped_column(String(20))
    room_type: Mapped[RoomType] = mapped_column(SqlEnum(RoomType))
    price_per_night: Mapped[float] = mapped_column(Float)
    max_guests: Mapped[int] = mapped_column(Integer)
    is_available: Mapped[bool] = mapped_column(Boolean, default=True)
    amenities: Mapped[list[str]] = mapped_column(JSON, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)


class Booking(Base):
    __tablename__ = "bookings"
    __table_args__ = (
        CheckConstraint("check_out_date > check_in_date", name="ck_bookings_range_ordered"),
        CheckConstraint("total_price >= 0", name="ck_bookings_price_non_negative"),
        Index("ix_bookings_room_range", "room_id", "check_in_date", "check_out_date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)
    hotel_id: Mapped[int] = mapped_column(ForeignKey("hotels.id"), index=True)
    room_id: Mapped[int] = mapped_column(ForeignKey("rooms.id"), index=True)
    check_in_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    check_out_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    total_price: Mapped[float] = mapped_column(Float)
    status: Mapped[BookingStatus] = mapped_column(SqlEnum(BookingStatus), default=BookingStatus.PENDING)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    @property
    def is_active(self) -> bool:
        return self.status != BookingStatus.CANCELLED
