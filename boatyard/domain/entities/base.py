"""
Shared helpers for entity identity, timestamps and serialization.
"""
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional
from uuid import uuid4


def new_id() -> str:
    return str(uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def dump_decimal(value: Optional[Decimal]) -> Optional[str]:
    return None if value is None else str(value)


def load_decimal(value) -> Optional[Decimal]:
    return None if value is None else Decimal(str(value))


def dump_datetime(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def load_datetime(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def dump_date(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None


def load_date(value: Optional[str]) -> Optional[date]:
    return date.fromisoformat(value) if value else None
