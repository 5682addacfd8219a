from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from hotel_common import auth
from hotel_common.config import get_settings
from hotel_common.database import Base, engine, get_db
from hotel_common.dependencies import allow_roles, get_current_active_user
from hotel_common.errors import register_error_handlers
from hotel_common.logging_middleware import add_audit_middleware
from hotel_common.models import RoleEnum, User
from hotel_common.rate_limit import apply_rate_limiter, limiter
from hotel_common.schemas import Token, UserCreate, UserRead

settings = get_settings()


@asynccontextmanager
async def lifespan(_: FastAPI):
    if settings.run_db_migrations:
        Base.metadata.create_all(bind=engine)
    yield


def create_app() -> FastAPI:
    fastapi_app = FastAPI(title="Users Service", version="1.0.0", lifespan=lifespan)
    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    apply_rate_limiter(fastapi_app, "users")
    add_audit_middleware(fastapi_app, "users")
    register_error_handlers(fastapi_app, "users")
    return fastapi_app


app = create_app()


@app.get("/health", tags=["health"])
def health() -> dict[str, str]:
    return {"status": "ok", "service": "users"}


@app.post("/users/register", response_model=UserRead, status_code=status.HTTP_201_CREATED)
@limiter.limit("5/minute")
def register_user(request: Request, user_in: UserCreate, db: Session = Depends(get_db)) -> User:
    if db.query(User).filter(User.email == user_in.email).first():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already registered")

    # The first admin may self-register; afterwards every new account is a regular user.
    admins_exist = db.query(User).filter(User.role == RoleEnum.ADMIN).first() is not None
    if user_in.role == RoleEnum.ADMIN and admins_exist:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only admins can assign elevated roles")

    user = User(
        name=user_in.name,
        email=user_in.email,
        phone=user_in.phone,
        role=user_in.role,
        hashed_password=auth.get_password_hash(user_in.password),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@app.post("/users/login", response_model=Token)
@limiter.limit("10/minute")
def login(request: Request, form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)) -> Token:
    user = auth.authenticate_user(db, form_data.username, form_data.password)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Incorrect email or password")

    return Token(access_token=auth.issue_user_token(user))


@app.get("/users/me", response_model=UserRead)
def read_me(current_user: User = Depends(get_current_active_user)) -> User:
    return current_user


@app.get("/users", response_model=list[UserRead])
@limiter.limit("20/minute")
def list_users(
    request: Request,
    _: User = Depends(allow_roles(RoleEnum.ADMIN)),
    db: Session = Depends(get_db),
) -> list[User]:
    return db.query(User).order_by(User.id).all()
