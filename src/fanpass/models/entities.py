"""Persisted entity records: users, events, tickets, and fan credentials."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class IssuanceStatus(str, Enum):
    """Where a ticket stands with the external credential service."""

    PENDING = "pending"  # purchased, credential not issued yet
    ISSUED = "issued"
    FAILED = "failed"  # last attempt failed, safe to retry


class CredentialType(str, Enum):
    """Well-known credential tags. Any other string is accepted too."""

    ATTENDANCE = "attendance"
    EARLY_SUPPORTER = "early_supporter"
    VIP = "vip"


@dataclass
class User:
    id: str
    wallet_address: str
    moca_id: str | None = None
    username: str | None = None
    reputation_score: int = 0
    verified_fan: bool = False
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class Event:
    id: str
    title: str
    artist_name: str
    venue: str
    event_date: datetime
    ticket_price: int
    max_tickets: int
    sold_tickets: int = 0
    description: str | None = None
    image_url: str | None = None
    contract_address: str | None = None
    created_by: str | None = None
    created_at: datetime = field(default_factory=utcnow)

    @property
    def available(self) -> int:
        return self.max_tickets - self.sold_tickets


@dataclass
class Ticket:
    id: str
    event_id: str
    owner_id: str
    purchase_price: int  # snapshot of Event.ticket_price at purchase time
    token_id: str | None = None
    is_used: bool = False
    holder_did: str | None = None
    issuance_status: IssuanceStatus = IssuanceStatus.PENDING
    issuance_error: str | None = None
    purchased_at: datetime = field(default_factory=utcnow)


@dataclass
class FanCredential:
    id: str
    user_id: str
    artist_name: str
    credential_type: str
    credential_data: str | None = None  # opaque JSON text
    issued_at: datetime = field(default_factory=utcnow)


def to_dict(obj: Any) -> dict:
    """Convert an entity or record to a JSON-friendly dict."""
    return {k: _plain(v) for k, v in asdict(obj).items()}


def _plain(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_plain(v) for v in value]
    return value
