from contextlib import asynccontextmanager
from datetime import datetime
from typing import List

from fastapi import Depends, FastAPI, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session

from hotel_common.availability import AvailabilityEngine
from hotel_common.config import get_settings
from hotel_common.database import Base, engine, get_db
from hotel_common.dependencies import allow_roles, get_booking_engine, get_current_active_user
from hotel_common.errors import register_error_handlers
from hotel_common.logging_middleware import add_audit_middleware
from hotel_common.models import Booking, RoleEnum, User
from hotel_common.rate_limit import apply_rate_limiter, limiter
from hotel_common.schemas import AvailabilityRead, BookingCreate, BookingRead

settings = get_settings()


@asynccontextmanager
async def lifespan(_: FastAPI):
    if settings.run_db_migrations:
        Base.metadata.create_all(bind=engine)
    yield


def create_app() -> FastAPI:
    fastapi_app = FastAPI(title="Bookings Service", version="1.0.0", lifespan=lifespan)
    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    apply_rate_limiter(fastapi_app, "bookings")
    add_audit_middleware(fastapi_app, "bookings")
    register_error_handlers(fastapi_app, "bookings")
    return fastapi_app


app = create_app()


@app.get("/health", tags=["health"])
def health() -> dict[str, str]:
    return {"status": "ok", "service": "bookings"}


@app.post("/bookings", response_model=BookingRead, status_code=status.HTTP_201_CREATED)
@limiter.limit("20/minute")
def create_booking(
    request: Request,
    booking_in: BookingCreate,
    current_user: User = Depends(get_current_active_user),
    booking_engine: AvailabilityEngine = Depends(get_booking_engine),
) -> Booking:
    return booking_engine.create_booking(
        user_id=current_user.id,
        hotel_id=booking_in.hotel_id,
        room_id=booking_in.room_id,
        check_in=booking_in.check_in_date,
        check_out=booking_in.check_out_date,
    )


@app.get("/bookings/user", response_model=List[BookingRead])
@limiter.limit("30/minute")
def list_my_bookings(
    request: Request,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db),
) -> List[Booking]:
    return (
        db.query(Booking)
        .filter(Booking.user_id == current_user.id)
        .order_by(Booking.created_at.desc(), Booking.id.desc())
        .all()
    )


@app.get("/bookings/admin", response_model=List[BookingRead])
@limiter.limit("30/minute")
def list_all_bookings(
    request: Request,
    _: User = Depends(allow_roles(RoleEnum.ADMIN)),
    db: Session = Depends(get_db),
) -> List[Booking]:
    return db.query(Booking).order_by(Booking.created_at.desc(), Booking.id.desc()).all()


@app.put("/bookings/cancel/{booking_id}", response_model=BookingRead)
@limiter.limit("20/minute")
def cancel_booking(
    request: Request,
    booking_id: int,
    current_user: User = Depends(get_current_active_user),
    booking_engine: AvailabilityEngine = Depends(get_booking_engine),
) -> Booking:
    return booking_engine.cancel_booking(booking_id, current_user)


@app.get("/bookings/availability", response_model=AvailabilityRead)
@limiter.limit("60/minute")
def check_availability(
    request: Request,
    room_id: int,
    check_in_date: datetime = Query(...),
    check_out_date: datetime = Query(...),
    booking_engine: AvailabilityEngine = Depends(get_booking_engine),
) -> AvailabilityRead:
    available = booking_engine.check_availability(room_id, check_in_date, check_out_date)
    return AvailabilityRead(
        room_id=room_id,
        check_in_date=check_in_date,
        check_out_date=check_out_date,
        is_available=available,
    )
