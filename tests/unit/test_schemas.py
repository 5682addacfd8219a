"""Unit tests for schema validation."""
from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from hotel_common.models import RoleEnum, RoomType
from hotel_common.schemas import BookingCreate, HotelCreate, HotelUpdate, RoomCreate, UserCreate

HOTEL = {
    "name": "  Grand Plaza Hotel ",
    "city": "New York",
    "address": "123 Broadway",
    "description": "Luxurious hotel.",
    "price_per_night": 250,
    "total_rooms": 50,
    "available_rooms": 45,
}


class TestUserSchemas:
    def test_user_create_default_role(self):
        user = UserCreate(name="Jane Doe", email="Jane@Example.com", password="secret1")

        assert user.role == RoleEnum.USER
        assert user.email == "jane@example.com"

    def test_user_create_invalid_email(self):
        with pytest.raises(ValidationError):
            UserCreate(name="Test User", email="invalid-email", password="Password123")

    def test_user_create_short_password(self):
        with pytest.raises(ValidationError):
            UserCreate(name="Test User", email="test@example.com", password="123")


class TestHotelSchemas:
    def test_hotel_create_defaults(self):
        hotel = HotelCreate(**HOTEL)

        assert hotel.name == "Grand Plaza Hotel"
        assert hotel.rating == 0
        assert hotel.images == []
        assert hotel.amenities == []

    @pytest.mark.parametrize(
        "override",
        [{"price_per_night": -1}, {"rating": 6}, {"total_rooms": 0}, {"available_rooms": -1}, {"city": ""}],
    )
    def test_hotel_create_rejects_invalid_values(self, override):
        with pytest.raises(ValidationError):
            HotelCreate(**{**HOTEL, **override})

    def test_hotel_update_is_partial(self):
        update = HotelUpdate(rating=4.2)
        assert update.model_dump(exclude_unset=True) == {"rating": 4.2}

    def test_available_rooms_cannot_exceed_total(self):
        with pytest.raises(ValidationError):
            HotelCreate(**{**HOTEL, "total_rooms": 10, "available_rooms": 11})
        with pytest.raises(ValidationError):
            HotelUpdate(total_rooms=3, available_rooms=4)

        assert HotelCreate(**{**HOTEL, "total_rooms": 10, "available_rooms": 10}).available_rooms == 10
        assert HotelUpdate(available_rooms=400).available_rooms == 400


class TestRoomSchemas:
    def test_room_create_valid(self):
        room = RoomCreate(room_number="101", room_type="suite", price_per_night=300, max_guests=4)

        assert room.room_type == RoomType.SUITE
        assert room.is_available is True

    @pytest.mark.parametrize(
        "override",
        [{"room_type": "penthouse"}, {"price_per_night": -10}, {"max_guests": 0}],
    )
    def test_room_create_rejects_invalid_values(self, override):
        payload = {"room_number": "101", "room_type": "single", "price_per_night": 100, "max_guests": 1}
        with pytest.raises(ValidationError):
            RoomCreate(**{**payload, **override})


class TestBookingSchemas:
    def test_booking_create_parses_iso_dates(self):
        booking = BookingCreate(
            hotel_id=1,
            room_id=2,
            check_in_date="2024-01-01T00:00:00Z",
            check_out_date="2024-01-03T00:00:00Z",
        )

        assert booking.check_in_date == datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert booking.check_out_date == datetime(2024, 1, 3, tzinfo=timezone.utc)

    def test_booking_create_requires_dates(self):
        with pytest.raises(ValidationError):
            BookingCreate(hotel_id=1, room_id=2, check_in_date="not-a-date", check_out_date="2024-01-03")
