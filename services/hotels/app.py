import logging
import math
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from circuitbreaker import CircuitBreaker, CircuitBreakerError
from fastapi import Depends, FastAPI, HTTPException, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from hotel_common.availability import hotels_with_free_rooms, validate_range
from hotel_common.cache import ReadThroughCache
from hotel_common.config import get_settings
from hotel_common.database import Base, engine, get_db
from hotel_common.dependencies import allow_roles
from hotel_common.errors import register_error_handlers
from hotel_common.logging_middleware import add_audit_middleware
from hotel_common.models import Booking, Hotel, RoleEnum, Room, User
from hotel_common.rate_limit import apply_rate_limiter, limiter
from hotel_common.schemas import HotelCreate, HotelPage, HotelRead, HotelUpdate

logger = logging.getLogger(__name__)
settings = get_settings()
hotel_cache: ReadThroughCache[HotelRead] = ReadThroughCache(ttl=settings.hotel_cache_ttl)
hotel_search_breaker = CircuitBreaker(
    failure_threshold=5, recovery_timeout=60, expected_exception=SQLAlchemyError, name="hotel_search"
)


@asynccontextmanager
async def lifespan(_: FastAPI):
    if settings.run_db_migrations:
        Base.metadata.create_all(bind=engine)
    yield


def create_app() -> FastAPI:
    fastapi_app = FastAPI(title="Hotels Service", version="1.0.0", lifespan=lifespan)
    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    apply_rate_limiter(fastapi_app, "hotels")
    add_audit_middleware(fastapi_app, "hotels")
    register_error_handlers(fastapi_app, "hotels")
    fastapi_app.add_exception_handler(CircuitBreakerError, _circuit_open_handler)
    return fastapi_app


def _circuit_open_handler(_: Request, exc: CircuitBreakerError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"service": "hotels", "code": "storage_error", "detail": "Hotel search is temporarily unavailable"},
    )


app = create_app()


def _get_hotel_or_404(db: Session, hotel_id: int) -> Hotel:
    hotel = db.get(Hotel, hotel_id)
    if not hotel:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Hotel not found")
    return hotel


def delete_hotel_with_inventory(db: Session, hotel: Hotel) -> tuple[int, int]:
    """Delete a hotel's bookings, then its rooms, then the hotel, in one transaction.

    Returns the number of bookings and rooms removed.
    """
    hotel_room_ids = select(Room.id).where(Room.hotel_id == hotel.id)
    removed_bookings = (
        db.query(Booking)
        .filter(or_(Booking.hotel_id == hotel.id, Booking.room_id.in_(hotel_room_ids)))
        .delete(synchronize_session=False)
    )
    removed_rooms = db.query(Room).filter(Room.hotel_id == hotel.id).delete(synchronize_session=False)
    db.delete(hotel)
    db.commit()
    return removed_bookings, removed_rooms


@app.get("/health", tags=["health"])
def health() -> dict[str, str]:
    return {"status": "ok", "service": "hotels"}


@app.post("/hotels", response_model=HotelRead, status_code=status.HTTP_201_CREATED)
@limiter.limit("10/minute")
def create_hotel(
    request: Request,
    hotel_in: HotelCreate,
    _: User = Depends(allow_roles(RoleEnum.ADMIN)),
    db: Session = Depends(get_db),
) -> Hotel:
    hotel = Hotel(**hotel_in.model_dump())
    db.add(hotel)
    db.commit()
    db.refresh(hotel)
    return hotel


@app.get("/hotels", response_model=HotelPage)
@hotel_search_breaker
def search_hotels(
    request: Request,
    city: Optional[str] = None,
    min_price: Optional[float] = Query(None, ge=0),
    max_price: Optional[float] = Query(None, ge=0),
    min_rating: Optional[float] = Query(None, ge=0, le=5),
    check_in_date: Optional[datetime] = None,
    check_out_date: Optional[datetime] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    db: Session = Depends(get_db),
) -> HotelPage:
    query = db.query(Hotel)
    if city:
        query = query.filter(Hotel.city.ilike(f"%{city.strip()}%"))
    if min_price is not None:
        query = query.filter(Hotel.price_per_night >= min_price)
    if max_price is not None:
        query = query.filter(Hotel.price_per_night <= max_price)
    if min_rating is not None:
        query = query.filter(Hotel.rating >= min_rating)
    if (check_in_date is None) != (check_out_date is None):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Provide both check_in_date and check_out_date to filter by availability",
        )
    if check_in_date is not None and check_out_date is not None:
        check_in, check_out = validate_range(check_in_date, check_out_date)
        query = query.filter(Hotel.id.in_(hotels_with_free_rooms(check_in, check_out)))

    total = query.count()
    hotels = (
        query.order_by(Hotel.created_at.desc(), Hotel.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return HotelPage(
        count=len(hotels),
        total=total,
        page=page,
        pages=math.ceil(total / limit),
        data=[HotelRead.model_validate(hotel) for hotel in hotels],
    )


@app.get("/hotels/{hotel_id}", response_model=HotelRead)
@limiter.limit("60/minute")
def get_hotel(request: Request, hotel_id: int, db: Session = Depends(get_db)) -> HotelRead:
    def load() -> Optional[HotelRead]:
        hotel = db.get(Hotel, hotel_id)
        return HotelRead.model_validate(hotel) if hotel else None

    cached = hotel_cache.get_or_load(hotel_id, load)
    if cached is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Hotel not found")
    return cached


@app.put("/hotels/{hotel_id}", response_model=HotelRead)
@limiter.limit("15/minute")
def update_hotel(
    request: Request,
    hotel_id: int,
    hotel_update: HotelUpdate,
    _: User = Depends(allow_roles(RoleEnum.ADMIN)),
    db: Session = Depends(get_db),
) -> Hotel:
    hotel = _get_hotel_or_404(db, hotel_id)
    changes = hotel_update.model_dump(exclude_unset=True, exclude_none=True)
    if changes.get("available_rooms", hotel.available_rooms) > changes.get("total_rooms", hotel.total_rooms):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="available_rooms cannot exceed total_rooms",
        )
    for key, value in changes.items():
        setattr(hotel, key, value)
    db.commit()
    db.refresh(hotel)
    hotel_cache.invalidate(hotel_id)
    return hotel


@app.delete("/hotels/{hotel_id}", status_code=status.HTTP_200_OK)
@limiter.limit("5/minute")
def delete_hotel(
    request: Request,
    hotel_id: int,
    current_user: User = Depends(allow_roles(RoleEnum.ADMIN)),
    db: Session = Depends(get_db),
) -> dict[str, int | str]:
    hotel = _get_hotel_or_404(db, hotel_id)
    removed_bookings, removed_rooms = delete_hotel_with_inventory(db, hotel)
    hotel_cache.invalidate(hotel_id)
    logger.info(
        "Hotel %s deleted by user %s: removed %s room(s) and %s booking(s)",
        hotel_id,
        current_user.id,
        removed_rooms,
        removed_bookings,
    )
    return {
        "detail": "Hotel deleted successfully",
        "removed_rooms": removed_rooms,
        "removed_bookings": removed_bookings,
    }
