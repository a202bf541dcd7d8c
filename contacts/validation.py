"""
Request payload validation.

Payloads may carry address data flat (``street``, ``geo_lat``...) or nested
(``address.geo.lat``...); both shapes are validated. Every violated rule is
reported, not just the first one.
"""

from __future__ import annotations

import re
from typing import Any, Optional

import pydantic
from pydantic import BaseModel, ConfigDict, EmailStr, Field, ValidationInfo, field_validator

from contacts.errors import ValidationError

PHONE_PATTERN = re.compile(r"^[0-9\-\+\(\)\s]+$")
NAME_MAX_LENGTH = 100
# Width of the text columns in the users table.
TEXT_MAX_LENGTH = 255

REQUIRED_MESSAGES = {
    "name": "Name is required",
    "email": "Please enter a valid email",
    "phone": "Phone number is required",
}
# Messages that replace whatever pydantic reports for the field.
FIELD_MESSAGES = {
    "email": "Please enter a valid email",
}
COORDINATE_LABELS = {
    "lat": "Latitude",
    "lng": "Longitude",
    "geo_lat": "Latitude",
    "geo_lng": "Longitude",
}


def _coordinate(value: Any, field_name: str) -> Any:
    label = COORDINATE_LABELS[field_name]
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError(f"{label} must be a valid number")
    if isinstance(value, (int, float)):
        text = str(value)
    elif isinstance(value, str):
        value = text = value.strip()
        if not value:
            return None
        try:
            float(value)
        except ValueError:
            raise ValueError(f"{label} must be a valid number") from None
    else:
        raise ValueError(f"{label} must be a valid number")
    if len(text) > TEXT_MAX_LENGTH:
        raise ValueError(f"{label} must be at most {TEXT_MAX_LENGTH} characters")
    return value


class GeoPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    lat: Any = None
    lng: Any = None

    @field_validator("lat", "lng")
    @classmethod
    def check_coordinates(cls, value: Any, info: ValidationInfo) -> Any:
        return _coordinate(value, info.field_name)


class AddressPayload(BaseModel):
    model_config = ConfigDict(
        str_strip_whitespace=True, coerce_numbers_to_str=True, extra="ignore"
    )

    street: Optional[str] = Field(default=None, max_length=TEXT_MAX_LENGTH)
    city: Optional[str] = Field(default=None, max_length=TEXT_MAX_LENGTH)
    zip: Optional[str] = Field(default=None, max_length=TEXT_MAX_LENGTH)
    geo: Optional[GeoPayload] = None


class UserUpdatePayload(BaseModel):
    """Every field optional; a supplied field must still be valid."""

    model_config = ConfigDict(
        str_strip_whitespace=True, coerce_numbers_to_str=True, extra="ignore"
    )

    name: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, max_length=TEXT_MAX_LENGTH)
    company: Optional[str] = Field(default=None, max_length=TEXT_MAX_LENGTH)
    street: Optional[str] = Field(default=None, max_length=TEXT_MAX_LENGTH)
    city: Optional[str] = Field(default=None, max_length=TEXT_MAX_LENGTH)
    zip: Optional[str] = Field(default=None, max_length=TEXT_MAX_LENGTH)
    geo_lat: Any = None
    geo_lng: Any = None
    address: Optional[AddressPayload] = None

    @field_validator("name", "email", "phone", mode="before")
    @classmethod
    def reject_null(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None:
            raise ValueError(REQUIRED_MESSAGES[info.field_name])
        return value

    @field_validator("name")
    @classmethod
    def check_name(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        if not value:
            raise ValueError("Name is required")
        if len(value) > NAME_MAX_LENGTH:
            raise ValueError(f"Name must be at most {NAME_MAX_LENGTH} characters")
        return value

    @field_validator("phone")
    @classmethod
    def check_phone(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        if not value:
            raise ValueError("Phone number is required")
        if not PHONE_PATTERN.match(value):
            raise ValueError("Please enter a valid phone number")
        return value

    @field_validator("geo_lat", "geo_lng")
    @classmethod
    def check_coordinates(cls, value: Any, info: ValidationInfo) -> Any:
        return _coordinate(value, info.field_name)


class UserCreatePayload(UserUpdatePayload):
    name: str
    email: EmailStr
    phone: str = Field(max_length=TEXT_MAX_LENGTH)


def _format_errors(exc: pydantic.ValidationError) -> list[dict]:
    errors = []
    for err in exc.errors():
        field = ".".join(str(part) for part in err["loc"])
        if err["type"] == "missing":
            message = REQUIRED_MESSAGES.get(field, "Field is required")
        elif field in FIELD_MESSAGES:
            message = FIELD_MESSAGES[field]
        elif err["type"] == "value_error" and "error" in err.get("ctx", {}):
            message = str(err["ctx"]["error"])
        else:
            message = err["msg"]
        errors.append({"field": field, "message": message})
    return errors


def _validate(model: type[UserUpdatePayload], payload: Any) -> dict:
    if not isinstance(payload, dict):
        raise ValidationError(
            [{"field": "body", "message": "Request body must be a JSON object"}]
        )
    try:
        validated = model.model_validate(payload)
    except pydantic.ValidationError as exc:
        raise ValidationError(_format_errors(exc)) from exc
    return validated.model_dump(exclude_unset=True)


def validate_create(payload: Any) -> dict:
    """Return the sanitized create payload or raise ``ValidationError``."""
    return _validate(UserCreatePayload, payload)


def validate_update(payload: Any) -> dict:
    """
    Return only the fields the caller supplied (explicit nulls included),
    sanitized, or raise ``ValidationError``.
    """
    return _validate(UserUpdatePayload, payload)
