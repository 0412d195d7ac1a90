"""In-memory implementation of the EntityStore protocol."""

from __future__ import annotations

import asyncio
import itertools
import uuid
from collections import defaultdict
from dataclasses import replace
from datetime import datetime

from fanpass.errors import AlreadyRedeemedError, DuplicateError, NotFoundError
from fanpass.models.entities import (
    Event,
    FanCredential,
    IssuanceStatus,
    Ticket,
    User,
    utcnow,
)
from fanpass.models.inputs import (
    InsertEvent,
    InsertFanCredential,
    InsertTicket,
    InsertUser,
)


def _new_id() -> str:
    return str(uuid.uuid4())


class MemoryEntityStore:
    """Dict-backed EntityStore for tests and ephemeral runs.

    Records are copied on the way in and out so callers never hold a
    reference into the store. Uniqueness and reference checks mirror the
    SQLite schema so both backends behave the same.
    """

    def __init__(self) -> None:
        self._users: dict[str, User] = {}
        self._events: dict[str, Event] = {}
        self._tickets: dict[str, Ticket] = {}
        self._credentials: dict[str, FanCredential] = {}
        # Insertion sequence, used to break timestamp ties newest-first
        self._seq: dict[str, int] = {}
        self._counter = itertools.count()
        self._event_locks: dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def initialize(self) -> None:
        pass

    async def close(self) -> None:
        pass

    def _track(self, entity_id: str) -> None:
        self._seq[entity_id] = next(self._counter)

    # ── Users ──────────────────────────────────────────────

    async def get_user(self, user_id: str) -> User | None:
        user = self._users.get(user_id)
        return replace(user) if user else None

    async def get_user_by_wallet_address(self, wallet_address: str) -> User | None:
        for user in self._users.values():
            if user.wallet_address == wallet_address:
                return replace(user)
        return None

    async def create_user(self, data: InsertUser) -> User:
        self._check_user_unique(data.wallet_address, data.moca_id)
        user = User(
            id=_new_id(),
            wallet_address=data.wallet_address,
            moca_id=data.moca_id,
            username=data.username,
            created_at=utcnow(),
        )
        self._users[user.id] = user
        self._track(user.id)
        return replace(user)

    async def update_user(
        self,
        user_id: str,
        moca_id: str | None = None,
        username: str | None = None,
    ) -> User | None:
        user = self._users.get(user_id)
        if user is None:
            return None
        if moca_id is not None:
            self._check_user_unique(None, moca_id, exclude=user_id)
            user.moca_id = moca_id
        if username is not None:
            user.username = username
        return replace(user)

    async def apply_reputation(self, user_id: str, points: int) -> User | None:
        user = self._users.get(user_id)
        if user is None:
            return None
        user.reputation_score += points
        user.verified_fan = True
        return replace(user)

    def _check_user_unique(
        self, wallet_address: str | None, moca_id: str | None, exclude: str | None = None,
    ) -> None:
        for user in self._users.values():
            if user.id == exclude:
                continue
            if wallet_address is not None and user.wallet_address == wallet_address:
                raise DuplicateError("users.wallet_address")
            if moca_id is not None and user.moca_id == moca_id:
                raise DuplicateError("users.moca_id")

    # ── Events ─────────────────────────────────────────────

    async def get_event(self, event_id: str) -> Event | None:
        event = self._events.get(event_id)
        return replace(event) if event else None

    async def get_all_events(self) -> list[Event]:
        events = sorted(
            self._events.values(),
            key=lambda e: (e.event_date, self._seq[e.id]),
            reverse=True,
        )
        return [replace(e) for e in events]

    async def create_event(self, data: InsertEvent) -> Event:
        if data.created_by is not None and data.created_by not in self._users:
            raise NotFoundError("User", data.created_by)
        event = Event(
            id=_new_id(),
            title=data.title,
            description=data.description,
            artist_name=data.artist_name,
            venue=data.venue,
            event_date=data.event_date,
            ticket_price=data.ticket_price,
            max_tickets=data.max_tickets,
            image_url=data.image_url,
            created_by=data.created_by,
            created_at=utcnow(),
        )
        self._events[event.id] = event
        self._track(event.id)
        return replace(event)

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
        event = self._events.get(event_id)
        if event is None:
            return None
        fields = {
            "title": title,
            "description": description,
            "venue": venue,
            "event_date": event_date,
            "ticket_price": ticket_price,
            "image_url": image_url,
            "contract_address": contract_address,
        }
        for name, value in fields.items():
            if value is not None:
                setattr(event, name, value)
        return replace(event)

    # ── Tickets ────────────────────────────────────────────

    async def get_ticket(self, ticket_id: str) -> Ticket | None:
        ticket = self._tickets.get(ticket_id)
        return replace(ticket) if ticket else None

    async def get_tickets_by_user(self, user_id: str) -> list[Ticket]:
        return self._sorted_tickets(t for t in self._tickets.values() if t.owner_id == user_id)

    async def get_tickets_by_event(self, event_id: str) -> list[Ticket]:
        return self._sorted_tickets(t for t in self._tickets.values() if t.event_id == event_id)

    def _sorted_tickets(self, tickets) -> list[Ticket]:
        ordered = sorted(tickets, key=lambda t: (t.purchased_at, self._seq[t.id]), reverse=True)
        return [replace(t) for t in ordered]

    async def create_ticket(self, data: InsertTicket) -> Ticket:
        self._check_ticket_refs(data)
        return self._insert_ticket(data)

    async def reserve_ticket(self, data: InsertTicket) -> Ticket | None:
        self._check_ticket_refs(data)
        async with self._event_locks[data.event_id]:
            event = self._events[data.event_id]
            if event.sold_tickets >= event.max_tickets:
                return None
            ticket = self._insert_ticket(data)
            event.sold_tickets += 1
            return ticket

    def _check_ticket_refs(self, data: InsertTicket) -> None:
        if data.event_id not in self._events:
            raise NotFoundError("Event", data.event_id)
        if data.owner_id not in self._users:
            raise NotFoundError("User", data.owner_id)

    def _insert_ticket(self, data: InsertTicket) -> Ticket:
        ticket = Ticket(
            id=_new_id(),
            event_id=data.event_id,
            owner_id=data.owner_id,
            purchase_price=data.purchase_price,
            holder_did=data.holder_did,
            purchased_at=utcnow(),
        )
        self._tickets[ticket.id] = ticket
        self._track(ticket.id)
        return replace(ticket)

    async def update_ticket(
        self,
        ticket_id: str,
        token_id: str | None = None,
        is_used: bool | None = None,
    ) -> Ticket | None:
        ticket = self._tickets.get(ticket_id)
        if ticket is None:
            return None
        if is_used is False and ticket.is_used:
            raise AlreadyRedeemedError(ticket_id)
        if token_id is not None:
            self._check_token_unique(token_id, exclude=ticket_id)
            ticket.token_id = token_id
        if is_used:
            ticket.is_used = True
        return replace(ticket)

    async def redeem_ticket(self, ticket_id: str) -> Ticket | None:
        ticket = self._tickets.get(ticket_id)
        if ticket is None or ticket.is_used:
            return None
        ticket.is_used = True
        return replace(ticket)

    async def set_ticket_issuance(
        self,
        ticket_id: str,
        status: IssuanceStatus,
        token_id: str | None = None,
        error: str | None = None,
    ) -> Ticket | None:
        ticket = self._tickets.get(ticket_id)
        if ticket is None:
            return None
        if token_id is not None:
            self._check_token_unique(token_id, exclude=ticket_id)
            ticket.token_id = token_id
        ticket.issuance_status = IssuanceStatus(status)
        ticket.issuance_error = error
        return replace(ticket)

    def _check_token_unique(self, token_id: str, exclude: str) -> None:
        for ticket in self._tickets.values():
            if ticket.id != exclude and ticket.token_id == token_id:
                raise DuplicateError("tickets.token_id")

    # ── Fan credentials ────────────────────────────────────

    async def get_fan_credential(self, credential_id: str) -> FanCredential | None:
        credential = self._credentials.get(credential_id)
        return replace(credential) if credential else None

    async def get_credentials_by_user(self, user_id: str) -> list[FanCredential]:
        owned = [c for c in self._credentials.values() if c.user_id == user_id]
        owned.sort(key=lambda c: (c.issued_at, self._seq[c.id]), reverse=True)
        return [replace(c) for c in owned]

    async def create_fan_credential(self, data: InsertFanCredential) -> FanCredential:
        credential = FanCredential(
            id=_new_id(),
            user_id=data.user_id,
            artist_name=data.artist_name,
            credential_type=data.credential_type,
            credential_data=data.credential_data,
            issued_at=utcnow(),
        )
        self._credentials[credential.id] = credential
        self._track(credential.id)
        return replace(credential)
