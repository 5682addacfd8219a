import os
from typing import Generator

import pytest
from fastapi.testclient import TestClient

os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")
os.environ.setdefault("RATE_LIMITING_ENABLED", "false")

from hotel_common.config import reset_settings_cache  # noqa: E402

reset_settings_cache()

from hotel_common.database import Base, SessionLocal, engine  # noqa: E402
from hotel_common.models import RoleEnum  # noqa: E402
from hotel_common.rate_limit import limiter  # noqa: E402
from services.bookings.app import app as bookings_app  # noqa: E402
from services.hotels.app import app as hotels_app, hotel_cache, hotel_search_breaker  # noqa: E402
from services.rooms.app import app as rooms_app  # noqa: E402
from services.users.app import app as users_app  # noqa: E402

ADMIN_PAYLOAD = {
    "name": "Admin User",
    "email": "admin@hotel.com",
    "password": "admin123",
    "phone": "+1234567890",
    "role": RoleEnum.ADMIN.value,
}

USER_PAYLOAD = {
    "name": "John Doe",
    "email": "user@example.com",
    "password": "user1234",
}

OTHER_USER_PAYLOAD = {
    "name": "Jane Roe",
    "email": "jane@example.com",
    "password": "jane1234",
}

HOTEL_PAYLOAD = {
    "name": "Grand Plaza Hotel",
    "city": "New York",
    "address": "123 Broadway, New York, NY 10001",
    "description": "Luxurious hotel in the heart of Manhattan.",
    "price_per_night": 250,
    "rating": 4.5,
    "amenities": ["WiFi", "Pool"],
    "total_rooms": 50,
    "available_rooms": 45,
}

ROOM_PAYLOAD = {
    "room_number": "101",
    "room_type": "double",
    "price_per_night": 150,
    "max_guests": 2,
}


def auth_header(users_client: TestClient, email: str, password: str) -> dict[str, str]:
    response = users_client.post(
        "/users/login",
        data={"username": email, "password": password},
        headers={"Content-Type": "application/x-www-form-urlencoded"},
    )
    token = response.json()["access_token"]
    return {"Authorization": f"Bearer {token}"}


def register_and_login(users_client: TestClient, payload: dict) -> dict[str, str]:
    users_client.post("/users/register", json=payload)
    return auth_header(users_client, payload["email"], payload["password"])


@pytest.fixture(autouse=True, scope="function")
def _create_test_database() -> Generator[None, None, None]:
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    hotel_cache.clear()
    hotel_search_breaker.reset()
    limiter.reset()
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db_session() -> Generator:
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def users_client() -> Generator[TestClient, None, None]:
    with TestClient(users_app) as client:
        yield client


@pytest.fixture()
def hotels_client() -> Generator[TestClient, None, None]:
    with TestClient(hotels_app) as client:
        yield client


@pytest.fixture()
def rooms_client() -> Generator[TestClient, None, None]:
    with TestClient(rooms_app) as client:
        yield client


@pytest.fixture()
def bookings_client() -> Generator[TestClient, None, None]:
    with TestClient(bookings_app) as client:
        yield client


@pytest.fixture()
def admin_headers(users_client) -> dict[str, str]:
    return register_and_login(users_client, ADMIN_PAYLOAD)


@pytest.fixture()
def user_headers(users_client) -> dict[str, str]:
    return register_and_login(users_client, USER_PAYLOAD)


@pytest.fixture()
def other_user_headers(users_client) -> dict[str, str]:
    return register_and_login(users_client, OTHER_USER_PAYLOAD)


@pytest.fixture()
def hotel_id(hotels_client, admin_headers) -> int:
    response = hotels_client.post("/hotels", json=HOTEL_PAYLOAD, headers=admin_headers)
    assert response.status_code == 201
    return response.json()["id"]


@pytest.fixture()
def room_id(rooms_client, admin_headers, hotel_id) -> int:
    response = rooms_client.post(f"/hotels/{hotel_id}/rooms", json=ROOM_PAYLOAD, headers=admin_headers)
    assert response.status_code == 201
    return response.json()["id"]
