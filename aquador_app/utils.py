# aquador_app/utils.py
# -*- coding: utf-8 -*-
from __future__ import annotations
from datetime import datetime, timezone


def utcnow() -> datetime:
    """UTC "ingênuo" (sem tzinfo), no mesmo formato gravado nas colunas DateTime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def isoformat(value: datetime | None) -> str | None:
    if value is None:
        return None
    return as_naive_utc(value).isoformat(timespec="seconds") + "Z"


def parse_datetime(raw: str | None) -> datetime | None:
    """Aceita ISO 8601 com ou sem 'Z'; devolve UTC ingênuo."""
    if not raw:
        return None
    raw = raw.strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    return as_naive_utc(datetime.fromisoformat(raw))
