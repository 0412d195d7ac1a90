"""EntityStore protocol - durable CRUD for users, events, tickets, credentials."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from fanpass.models.entities import (
    Event,
    FanCredential,
    IssuanceStatus,
    Ticket,
    User,
)
from fanpass.models.inputs import (
    InsertEvent,
    InsertFanCredential,
    InsertTicket,
    InsertUser,
)


class EntityStore(Protocol):
    """Persists the four ticketing entities.

    Lookups return ``None`` for unknown ids; translating absence into
    NotFoundError is the caller's job. Update methods treat a keyword left
    as ``None`` as "not provided".
    """

    # ── Lifecycle ──────────────────────────────────────────

    async def initialize(self) -> None:
        """Prepare the backend (create tables, open connections)."""
        ...

    async def close(self) -> None:
        ...

    # ── Users ──────────────────────────────────────────────

    async def get_user(self, user_id: str) -> User | None:
        ...

    async def get_user_by_wallet_address(self, wallet_address: str) -> User | None:
        ...

    async def create_user(self, data: InsertUser) -> User:
        """Raises DuplicateError for a wallet address or moca id already in use."""
        ...

    async def update_user(
        self,
        user_id: str,
        moca_id: str | None = None,
        username: str | None = None,
    ) -> User | None:
        ...

    async def apply_reputation(self, user_id: str, points: int) -> User | None:
        """Add ``points`` to the score and mark the user a verified fan, atomically."""
        ...

    # ── Events ─────────────────────────────────────────────

    async def get_event(self, event_id: str) -> Event | None:
        ...

    async def get_all_events(self) -> list[Event]:
        """All events, latest event_date first."""
        ...

    async def create_event(self, data: InsertEvent) -> Event:
        ...

    async def update_event(
        self,
        event_id: str,
        title: str | None = None,
        description: str | None = None,
        venue: str | None = None,
        event_date: datetime | None = None,
        ticket_price: int | None = None,
        image_url: str | None = None,
        contract_address: str | None = None,
    ) -> Event | None:
        ...

    # ── Tickets ────────────────────────────────────────────

    async def get_ticket(self, ticket_id: str) -> Ticket | None:
        ...

    async def get_tickets_by_user(self, user_id: str) -> list[Ticket]:
        """Tickets owned by the user, most recent purchase first."""
        ...

    async def get_tickets_by_event(self, event_id: str) -> list[Ticket]:
        ...

    async def create_ticket(self, data: InsertTicket) -> Ticket:
        """Insert a ticket without touching inventory."""
        ...

    async def reserve_ticket(self, data: InsertTicket) -> Ticket | None:
        """Take one inventory slot and create the ticket as a single atomic step.

        Returns ``None`` when the event has no slot left; sold_tickets never
        exceeds max_tickets.
        """
        ...

    async def update_ticket(
        self,
        ticket_id: str,
        token_id: str | None = None,
        is_used: bool | None = None,
    ) -> Ticket | None:
        """Raises AlreadyRedeemedError on an attempt to un-redeem a used ticket."""
        ...

    async def redeem_ticket(self, ticket_id: str) -> Ticket | None:
        """Flip is_used false -> true. ``None`` if missing or already used."""
        ...

    async def set_ticket_issuance(
        self,
        ticket_id: str,
        status: IssuanceStatus,
        token_id: str | None = None,
        error: str | None = None,
    ) -> Ticket | None:
        """Record an issuance attempt; ``error`` replaces the previous one."""
        ...

    # ── Fan credentials ────────────────────────────────────

    async def get_fan_credential(self, credential_id: str) -> FanCredential | None:
        ...

    async def get_credentials_by_user(self, user_id: str) -> list[FanCredential]:
        """Credentials for the user, newest first."""
        ...

    async def create_fan_credential(self, data: InsertFanCredential) -> FanCredential:
        ...
