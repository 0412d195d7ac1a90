"""Insert schemas: validated input shapes for creating entities.

Field names are snake_case; camelCase aliases (``walletAddress``,
``ticketPrice``...) are accepted so that wire payloads from web clients can
be passed through unchanged.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from fanpass.errors import ValidationError


class _InsertModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
    )


class InsertUser(_InsertModel):
    wallet_address: str = Field(..., min_length=1)
    moca_id: Optional[str] = None
    username: Optional[str] = None


class InsertEvent(_InsertModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    artist_name: str = Field(..., min_length=1)
    venue: str = Field(..., min_length=1)
    event_date: datetime
    ticket_price: int = Field(..., ge=0)
    max_tickets: int = Field(..., gt=0)
    image_url: Optional[str] = None
    created_by: Optional[str] = None

    @field_validator("event_date")
    @classmethod
    def _aware(cls, v: datetime) -> datetime:
        return as_utc(v)


class EventUpdate(_InsertModel):
    """Partial event update. Inventory counters are not updatable."""

    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    venue: Optional[str] = Field(None, min_length=1)
    event_date: Optional[datetime] = None
    ticket_price: Optional[int] = Field(None, ge=0)
    image_url: Optional[str] = None
    contract_address: Optional[str] = None

    @field_validator("event_date")
    @classmethod
    def _aware(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v) if v is not None else None


class InsertTicket(_InsertModel):
    event_id: str = Field(..., min_length=1)
    owner_id: str = Field(..., min_length=1)
    purchase_price: int = Field(..., ge=0)
    holder_did: Optional[str] = None


class InsertFanCredential(_InsertModel):
    user_id: str = Field(..., min_length=1)
    artist_name: str = Field(..., min_length=1)
    credential_type: str = Field(..., min_length=1)
    credential_data: Optional[str] = None

    @field_validator("credential_data", mode="before")
    @classmethod
    def _serialize(cls, v: Any) -> Any:
        # Structured payloads are stored as opaque JSON text
        if isinstance(v, (dict, list)):
            return json.dumps(v, sort_keys=True)
        return v


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC, convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


M = TypeVar("M", bound=BaseModel)


def parse_input(model: type[M], data: Any) -> M:
    """Validate ``data`` against ``model``, raising our ValidationError."""
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except PydanticValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'input'}: {err['msg']}"
            for err in exc.errors()
        )
        raise ValidationError(f"Invalid {model.__name__} data", details=problems) from exc
