"""Password hashing and the JWTs issued to hotel guests and admins.

Tokens carry the user id as a string ``sub`` claim plus the role, and expire
after ``access_token_expire_minutes``.
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import HTTPException, status
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from .config import get_settings
from .models import User

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
settings = get_settings()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    claims = dict(data)
    lifetime = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    claims["exp"] = datetime.now(timezone.utc) + lifetime
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def issue_user_token(user: User) -> str:
    return create_access_token({"sub": str(user.id), "role": user.role.value})


def decode_token(token: str) -> Dict[str, Any]:
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError as exc:
        raise _unauthorized("Invalid token") from exc


def user_id_from_token(token: str) -> int:
    """Decode ``token`` and return the user id it was issued for."""
    subject = decode_token(token).get("sub")
    if not isinstance(subject, str) or not subject.isdigit():
        raise _unauthorized("Invalid subject in token")
    return int(subject)


def authenticate_user(db: Session, email: str, password: str) -> Optional[User]:
    """Look a guest up by email (case-insensitive) and check the password."""
    user: Optional[User] = db.query(User).filter(User.email == email.strip().lower()).first()
    if not user or not verify_password(password, user.hashed_password):
        return None
    return user
