"""Availability engine: overlap detection and the booking lifecycle.

Every date range handled here is half-open, ``[check_in, check_out)``, so a stay
that ends on the day another one starts does not conflict with it. Instants are
normalized to naive UTC before they are compared or stored.

The engine talks to persistence only through a :class:`BookingStore`. The API
services build a :class:`SqlAlchemyBookingStore` per request; unit tests inject
an in-memory store.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import AbstractSet, ContextManager, Iterator, List, Optional, Protocol, Tuple

from sqlalchemy import ColumnElement, Select, and_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .errors import AlreadyCancelled, Conflict, Mismatch, NotFound, StorageError, Unauthorized, Unavailable, ValidationError
from .locks import RoomLockRegistry
from .models import Booking, BookingStatus, RoleEnum, Room, User, utcnow

logger = logging.getLogger(__name__)

INACTIVE_STATUSES: AbstractSet[BookingStatus] = frozenset({BookingStatus.CANCELLED})


def to_utc_naive(value: datetime) -> datetime:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def validate_range(check_in: datetime, check_out: datetime) -> Tuple[datetime, datetime]:
    """Normalize both ends and reject empty or inverted ranges."""
    check_in, check_out = to_utc_naive(check_in), to_utc_naive(check_out)
    if check_out <= check_in:
        raise ValidationError()
    return check_in, check_out


def intervals_overlap(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    return a_start < b_end and a_end > b_start


def calculate_nights(check_in: datetime, check_out: datetime) -> int:
    """Whole nights between two instants, any part of a day rounded up."""
    return -(-(check_out - check_in) // timedelta(days=1))


def overlap_clause(start: datetime, end: datetime) -> ColumnElement[bool]:
    """SQL form of :func:`intervals_overlap` against the ``bookings`` table."""
    return and_(Booking.check_in_date < end, Booking.check_out_date > start)


def booked_room_ids(start: datetime, end: datetime) -> Select:
    """Ids of rooms holding an active booking that overlaps ``[start, end)``."""
    return (
        select(Booking.room_id)
        .where(Booking.status.not_in(list(INACTIVE_STATUSES)), overlap_clause(start, end))
        .distinct()
    )


def bookable_room_clause(start: datetime, end: datetime) -> ColumnElement[bool]:
    return and_(Room.is_available.is_(True), Room.id.not_in(booked_room_ids(start, end)))


def hotels_with_free_rooms(start: datetime, end: datetime) -> Select:
    """Ids of hotels with at least one room that can be booked for ``[start, end)``."""
    return select(Room.hotel_id).where(bookable_room_clause(start, end)).distinct()


class BookingStore(Protocol):
    """Storage operations the engine depends on."""

    def transaction(self) -> ContextManager[None]:
        ...

    def find_room_by_id(self, room_id: int, for_update: bool = False) -> Optional[Room]:
        ...

    def find_booking_by_id(self, booking_id: int) -> Optional[Booking]:
        ...

    def find_bookings_overlapping(
        self,
        room_id: int,
        start: datetime,
        end: datetime,
        exclude_statuses: AbstractSet[BookingStatus] = INACTIVE_STATUSES,
    ) -> List[Booking]:
        ...

    def insert_booking(self, booking: Booking) -> int:
        ...

    def update_booking_status(self, booking_id: int, status: BookingStatus) -> bool:
        ...


class SqlAlchemyBookingStore:
    """:class:`BookingStore` backed by a request-scoped SQLAlchemy session."""

    def __init__(self, db: Session) -> None:
        self.db = db

    @contextmanager
    def _storage_call(self, action: str) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StorageError(f"Could not {action}, re-query booking state before retrying") from exc

    @contextmanager
    def transaction(self) -> Iterator[None]:
        try:
            yield
        except BaseException:
            self.db.rollback()
            raise
        with self._storage_call("commit the booking change"):
            self.db.commit()

    def find_room_by_id(self, room_id: int, for_update: bool = False) -> Optional[Room]:
        stmt = select(Room).where(Room.id == room_id)
        if for_update:
            stmt = stmt.with_for_update()
        with self._storage_call("load the room"):
            return self.db.scalars(stmt).first()

    def find_booking_by_id(self, booking_id: int) -> Optional[Booking]:
        with self._storage_call("load the booking"):
            return self.db.get(Booking, booking_id)

    def find_bookings_overlapping(
        self,
        room_id: int,
        start: datetime,
        end: datetime,
        exclude_statuses: AbstractSet[BookingStatus] = INACTIVE_STATUSES,
    ) -> List[Booking]:
        stmt = select(Booking).where(Booking.room_id == room_id, overlap_clause(start, end))
        if exclude_statuses:
            stmt = stmt.where(Booking.status.not_in(list(exclude_statuses)))
        with self._storage_call("check existing bookings"):
            return list(self.db.scalars(stmt))

    def insert_booking(self, booking: Booking) -> int:
        with self._storage_call("save the booking"):
            self.db.add(booking)
            self.db.flush()
        return booking.id

    def update_booking_status(self, booking_id: int, status: BookingStatus) -> bool:
        stmt = (
            update(Booking)
            .where(Booking.id == booking_id, Booking.status != status)
            .values(status=status, updated_at=utcnow())
        )
        with self._storage_call("update the booking status"):
            result = self.db.execute(stmt)
        return result.rowcount == 1


class AvailabilityEngine:
    def __init__(self, store: BookingStore, locks: RoomLockRegistry) -> None:
        self.store = store
        self.locks = locks

    def is_overlapping(
        self,
        room_id: int,
        candidate_start: datetime,
        candidate_end: datetime,
        exclude_statuses: AbstractSet[BookingStatus] = INACTIVE_STATUSES,
    ) -> bool:
        """True when an existing booking on the room intersects the candidate range.

        Cancelled bookings never count, whatever ``exclude_statuses`` says.
        """
        excluded = frozenset(exclude_statuses) | INACTIVE_STATUSES
        existing = self.store.find_bookings_overlapping(
            room_id, to_utc_naive(candidate_start), to_utc_naive(candidate_end), excluded
        )
        return len(existing) > 0

    def check_availability(self, room_id: int, check_in: datetime, check_out: datetime) -> bool:
        check_in, check_out = validate_range(check_in, check_out)
        return not self.is_overlapping(room_id, check_in, check_out)

    def create_booking(
        self,
        user_id: int,
        hotel_id: int,
        room_id: int,
        check_in: datetime,
        check_out: datetime,
    ) -> Booking:
        """Reserve a room for ``[check_in, check_out)`` and return the confirmed booking.

        The overlap check and the insert run under the room's lock and inside one
        transaction that also row-locks the room, so concurrent requests for the
        same room are decided one after the other.
        """
        check_in, check_out = validate_range(check_in, check_out)
        try:
            with self.locks.hold(room_id), self.store.transaction():
                room = self.store.find_room_by_id(room_id, for_update=True)
                if room is None:
                    raise NotFound("Room not found")
                if room.hotel_id != hotel_id:
                    raise Mismatch()
                if not room.is_available:
                    raise Unavailable()
                if self.is_overlapping(room_id, check_in, check_out):
                    raise Conflict()

                nights = calculate_nights(check_in, check_out)
                booking = Booking(
                    user_id=user_id,
                    hotel_id=hotel_id,
                    room_id=room_id,
                    check_in_date=check_in,
                    check_out_date=check_out,
                    total_price=nights * room.price_per_night,
                    status=BookingStatus.CONFIRMED,
                )
                booking_id = self.store.insert_booking(booking)
        except (NotFound, Mismatch, Unavailable, Conflict) as exc:
            logger.info("Refused booking of room %s for user %s: %s", room_id, user_id, exc.code)
            raise

        logger.info(
            "Booking %s confirmed: room %s, user %s, %s night(s) from %s",
            booking_id,
            room_id,
            user_id,
            nights,
            check_in.isoformat(),
        )
        return booking

    def cancel_booking(self, booking_id: int, requester: User) -> Booking:
        with self.store.transaction():
            booking = self.store.find_booking_by_id(booking_id)
            if booking is None:
                raise NotFound("Booking not found")
            if booking.user_id != requester.id and requester.role != RoleEnum.ADMIN:
                raise Unauthorized()
            if booking.status == BookingStatus.CANCELLED:
                raise AlreadyCancelled()
            if not self.store.update_booking_status(booking_id, BookingStatus.CANCELLED):
                raise AlreadyCancelled()

        logger.info("Booking %s cancelled by user %s", booking_id, requester.id)
        return booking
