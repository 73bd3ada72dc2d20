"""Serializers that convert billing events to dicts suitable for audit log state fields.

Decimals, UUIDs, dates and enums become strings for JSON compatibility.
Event bookkeeping (event_id, occurred_at) goes to metadata, not state.
"""

from __future__ import annotations

from dataclasses import fields
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from clinicbill.events import BillingEvent

_BOOKKEEPING_FIELDS = {"event_id", "occurred_at"}


def _jsonable(value: object) -> object:
    if isinstance(value, (Decimal, UUID)):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (tuple, list)):
        return [_jsonable(v) for v in value]
    return value


def serialize_event(event: BillingEvent) -> dict:
    """Serialize an event's payload for audit state."""
    return {f.name: _jsonable(getattr(event, f.name)) for f in fields(event) if f.name not in _BOOKKEEPING_FIELDS}


def event_metadata(event: BillingEvent) -> dict:
    return {
        "event_id": event.event_id,
        "event_name": event.event_type,
        "occurred_at": event.occurred_at.isoformat(),
    }
