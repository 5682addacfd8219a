from contextlib import asynccontextmanager
from datetime import datetime
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session

from hotel_common.availability import bookable_room_clause, validate_range
from hotel_common.config import get_settings
from hotel_common.database import Base, engine, get_db
from hotel_common.dependencies import allow_roles
from hotel_common.errors import register_error_handlers
from hotel_common.logging_middleware import add_audit_middleware
from hotel_common.models import Hotel, RoleEnum, Room, User
from hotel_common.rate_limit import apply_rate_limiter, limiter
from hotel_common.schemas import RoomCreate, RoomRead, RoomUpdate

settings = get_settings()


@asynccontextmanager
async def lifespan(_: FastAPI):
    if settings.run_db_migrations:
        Base.metadata.create_all(bind=engine)
    yield


def create_app() -> FastAPI:
    fastapi_app = FastAPI(title="Rooms Service", version="1.0.0", lifespan=lifespan)
    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    apply_rate_limiter(fastapi_app, "rooms")
    add_audit_middleware(fastapi_app, "rooms")
    register_error_handlers(fastapi_app, "rooms")
    return fastapi_app


app = create_app()


def _ensure_hotel(db: Session, hotel_id: int) -> Hotel:
    hotel = db.get(Hotel, hotel_id)
    if not hotel:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Hotel not found")
    return hotel


@app.get("/health", tags=["health"])
def health() -> dict[str, str]:
    return {"status": "ok", "service": "rooms"}


@app.post("/hotels/{hotel_id}/rooms", response_model=RoomRead, status_code=status.HTTP_201_CREATED)
@limiter.limit("20/minute")
def add_room(
    request: Request,
    hotel_id: int,
    room_in: RoomCreate,
    _: User = Depends(allow_roles(RoleEnum.ADMIN)),
    db: Session = Depends(get_db),
) -> Room:
    _ensure_hotel(db, hotel_id)
    room = Room(hotel_id=hotel_id, **room_in.model_dump())
    db.add(room)
    db.commit()
    db.refresh(room)
    return room


@app.get("/hotels/{hotel_id}/rooms", response_model=List[RoomRead])
@limiter.limit("60/minute")
def list_hotel_rooms(
    request: Request,
    hotel_id: int,
    check_in_date: Optional[datetime] = None,
    check_out_date: Optional[datetime] = None,
    db: Session = Depends(get_db),
) -> List[Room]:
    """List a hotel's rooms; with a date range, only rooms that can be booked for it."""
    _ensure_hotel(db, hotel_id)
    query = db.query(Room).filter(Room.hotel_id == hotel_id)
    if (check_in_date is None) != (check_out_date is None):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Provide both check_in_date and check_out_date to filter by availability",
        )
    if check_in_date is not None and check_out_date is not None:
        check_in, check_out = validate_range(check_in_date, check_out_date)
        query = query.filter(bookable_room_clause(check_in, check_out))
    return query.order_by(Room.room_number).all()


@app.get("/rooms/{room_id}", response_model=RoomRead)
@limiter.limit("60/minute")
def get_room(request: Request, room_id: int, db: Session = Depends(get_db)) -> Room:
    room = db.get(Room, room_id)
    if not room:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Room not found")
    return room


@app.put("/rooms/{room_id}", response_model=RoomRead)
@limiter.limit("15/minute")
def update_room(
    request: Request,
    room_id: int,
    room_update: RoomUpdate,
    _: User = Depends(allow_roles(RoleEnum.ADMIN)),
    db: Session = Depends(get_db),
) -> Room:
    room = db.get(Room, room_id)
    if not room:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Room not found")

    for key, value in room_update.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(room, key, value)
    db.commit()
    db.refresh(room)
    return room
