"""Reusable FastAPI dependencies for auth, database access and the booking engine."""
from typing import Callable

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from .auth import user_id_from_token
from .availability import AvailabilityEngine, SqlAlchemyBookingStore
from .config import get_settings
from .database import get_db
from .locks import RoomLockRegistry
from .models import RoleEnum, User

settings = get_settings()
oauth_scheme = OAuth2PasswordBearer(tokenUrl="/users/login")
room_locks = RoomLockRegistry(timeout=settings.booking_lock_timeout_seconds)


def get_current_user(token: str = Depends(oauth_scheme), db: Session = Depends(get_db)) -> User:
    user = db.get(User, user_id_from_token(token))
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User no longer exists")
    return user


def get_current_active_user(current_user: User = Depends(get_current_user)) -> User:
    return current_user


def allow_roles(*roles: RoleEnum) -> Callable[[User], User]:
    def dependency(current_user: User = Depends(get_current_active_user)) -> User:
        if current_user.role not in roles:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions")
        return current_user

    return dependency


def get_booking_engine(db: Session = Depends(get_db)) -> AvailabilityEngine:
    return AvailabilityEngine(SqlAlchemyBookingStore(db), room_locks)
