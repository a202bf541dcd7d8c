"""
Translation between the wire shape (nested ``address``) and the storage
shape (flat columns).

Write-side precedence is declared once in ``FIELD_RULES``: for every
storage column the paths are tried in order and the first one carrying a
value wins. Flat fields always precede their nested equivalents.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Mapping, Optional

Path = tuple[str, ...]

# Sentinel for "the caller never mentioned this field".
MISSING: Any = object()


def geo_to_str(value: Any) -> Any:
    """Numbers are stored in their string form; anything else passes through."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return str(value)
    return value


@dataclass(frozen=True)
class FieldRule:
    column: str
    paths: tuple[Path, ...]
    coerce: Optional[Callable[[Any], Any]] = None

    def resolve(self, payload: Mapping[str, Any]) -> Any:
        """
        Return the value for ``column``, ``None`` if the field was only
        supplied as an explicit null, or ``MISSING`` if it was not supplied.
        """
        explicit_null = False
        for path in self.paths:
            value = lookup(payload, path)
            if value is MISSING:
                continue
            if value is None:
                explicit_null = True
                continue
            return self.coerce(value) if self.coerce else value
        return None if explicit_null else MISSING


FIELD_RULES: tuple[FieldRule, ...] = (
    FieldRule("name", (("name",),)),
    FieldRule("email", (("email",),)),
    FieldRule("phone", (("phone",),)),
    FieldRule("company", (("company",),)),
    FieldRule("street", (("street",), ("address", "street"))),
    FieldRule("city", (("city",), ("address", "city"))),
    FieldRule("zip", (("zip",), ("address", "zip"))),
    FieldRule(
        "geo_lat", (("geo_lat",), ("address", "geo", "lat")), coerce=geo_to_str
    ),
    FieldRule(
        "geo_lng", (("geo_lng",), ("address", "geo", "lng")), coerce=geo_to_str
    ),
)

STORAGE_COLUMNS: tuple[str, ...] = tuple(rule.column for rule in FIELD_RULES)


def lookup(payload: Mapping[str, Any], path: Path) -> Any:
    """
    Walk ``path`` through nested mappings. An explicit ``null`` anywhere on
    the way (``address: null``) counts as a null for the leaf.
    """
    current: Any = payload
    for key in path:
        if current is None:
            return None
        if not isinstance(current, Mapping) or key not in current:
            return MISSING
        current = current[key]
    return current


def to_storage(payload: Mapping[str, Any], *, partial: bool = False) -> dict:
    """
    Build the write-set for the store.

    With ``partial=False`` (create) every column is present and unsupplied
    ones are ``None``. With ``partial=True`` (update) unsupplied columns are
    left out so the store does not touch them.
    """
    values: dict[str, Any] = {}
    for rule in FIELD_RULES:
        value = rule.resolve(payload)
        if value is MISSING:
            if partial:
                continue
            value = None
        values[rule.column] = value
    return values


def _text(value: Any) -> Any:
    return "" if value is None else value


def _timestamp(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def to_wire(record: Mapping[str, Any]) -> dict:
    created_at = _timestamp(record.get("created_at"))
    updated_at = _timestamp(record.get("updated_at")) or created_at
    return {
        "id": record.get("id"),
        "name": record.get("name"),
        "email": record.get("email"),
        "phone": record.get("phone"),
        "company": record.get("company"),
        "address": {
            "street": _text(record.get("street")),
            "city": _text(record.get("city")),
            "zip": _text(record.get("zip")),
            "geo": {
                "lat": _text(geo_to_str(record.get("geo_lat"))),
                "lng": _text(geo_to_str(record.get("geo_lng"))),
            },
        },
        "created_at": created_at,
        "updated_at": updated_at,
    }
