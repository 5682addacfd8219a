"""Pydantic schemas shared across the services."""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from .models import BookingStatus, RoleEnum, RoomType


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UserBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    phone: Optional[str] = Field(None, max_length=30)
    role: RoleEnum = RoleEnum.USER

    @field_validator("email")
    @classmethod
    def _lowercase_email(cls, value: str) -> str:
        return value.lower()


class UserCreate(UserBase):
    password: str = Field(..., min_length=6)


class UserRead(UserBase):
    id: int
    created_at: datetime

    model_config = {"from_attributes": True}


class HotelBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    city: str = Field(..., min_length=1, max_length=100)
    address: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    price_per_night: float = Field(..., ge=0)
    rating: float = Field(0, ge=0, le=5)
    images: List[str] = Field(default_factory=list)
    amenities: List[str] = Field(default_factory=list)
    total_rooms: int = Field(..., ge=1)
    available_rooms: int = Field(..., ge=0)

    @field_validator("name", "city", "address", "description")
    @classmethod
    def _strip(cls, value: str) -> str:
        return value.strip()

    @model_validator(mode="after")
    def _available_within_total(self) -> "HotelBase":
        if self.available_rooms > self.total_rooms:
            raise ValueError("available_rooms cannot exceed total_rooms")
        return self


class HotelCreate(HotelBase):
    pass


class HotelUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    city: Optional[str] = Field(None, min_length=1, max_length=100)
    address: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, min_length=1)
    price_per_night: Optional[float] = Field(None, ge=0)
    rating: Optional[float] = Field(None, ge=0, le=5)
    images: Optional[List[str]] = None
    amenities: Optional[List[str]] = None
    total_rooms: Optional[int] = Field(None, ge=1)
    available_rooms: Optional[int] = Field(None, ge=0)

    @model_validator(mode="after")
    def _available_within_total(self) -> "HotelUpdate":
        if self.available_rooms is not None and self.total_rooms is not None and self.available_rooms > self.total_rooms:
            raise ValueError("available_rooms cannot exceed total_rooms")
        return self


class HotelRead(HotelBase):
    id: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class HotelPage(BaseModel):
    count: int
    total: int
    page: int
    pages: int
    data: List[HotelRead]


class RoomBase(BaseModel):
    room_number: str = Field(..., min_length=1, max_length=20)
    room_type: RoomType
    price_per_night: float = Field(..., ge=0)
    max_guests: int = Field(..., ge=1)
    is_available: bool = True
    amenities: List[str] = Field(default_factory=list)


class RoomCreate(RoomBase):
    pass


class RoomUpdate(BaseModel):
    room_number: Optional[str] = Field(None, min_length=1, max_length=20)
    room_type: Optional[RoomType] = None
    price_per_night: Optional[float] = Field(None, ge=0)
    max_guests: Optional[int] = Field(None, ge=1)
    is_available: Optional[bool] = None
    amenities: Optional[List[str]] = None


class RoomRead(RoomBase):
    id: int
    hotel_id: int

    model_config = {"from_attributes": True}


class BookingCreate(BaseModel):
    hotel_id: int
    room_id: int
    check_in_date: datetime
    check_out_date: datetime


class BookingRead(BaseModel):
    id: int
    user_id: int
    hotel_id: int
    room_id: int
    check_in_date: datetime
    check_out_date: datetime
    total_price: float
    status: BookingStatus
    created_at: datetime

    model_config = {"from_attributes": True}


class AvailabilityRead(BaseModel):
    room_id: int
    check_in_date: datetime
    check_out_date: datetime
    is_available: bool
