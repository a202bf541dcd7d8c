"""
Pydantic response schemas for the contacts API.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel


class Geo(BaseModel):
    lat: str = ""
    lng: str = ""


class Address(BaseModel):
    street: str = ""
    city: str = ""
    zip: str = ""
    geo: Geo = Geo()


class UserOut(BaseModel):
    id: int
    name: str
    email: str
    phone: Optional[str] = None
    company: Optional[str] = None
    address: Address
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class UserEnvelope(BaseModel):
    success: bool = True
    message: Optional[str] = None
    data: UserOut


class UserListEnvelope(BaseModel):
    success: bool = True
    data: list[UserOut]


class AckEnvelope(BaseModel):
    success: bool = True
    message: str


class FieldError(BaseModel):
    field: str
    message: str


class ErrorEnvelope(BaseModel):
    success: bool = False
    message: str
    errors: Optional[list[FieldError]] = None
    error: Optional[dict] = None


class HealthResponse(BaseModel):
    status: str
    timestamp: str


class DbHealthResponse(BaseModel):
    status: str
    message: str
    timestamp: Optional[str] = None
    error: Optional[str] = None
