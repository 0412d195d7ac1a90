"""SQLite implementation of the EntityStore protocol."""

from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime
from pathlib import Path

import aiosqlite

from fanpass.errors import (
    AlreadyRedeemedError,
    ConfigurationError,
    ConflictError,
    DuplicateError,
    NotFoundError,
    TicketingError,
)
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

log = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    wallet_address TEXT NOT NULL UNIQUE,
    moca_id TEXT UNIQUE,
    username TEXT,
    reputation_score INTEGER NOT NULL DEFAULT 0 CHECK (reputation_score >= 0),
    verified_fan INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS events (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    description TEXT,
    artist_name TEXT NOT NULL,
    venue TEXT NOT NULL,
    event_date TEXT NOT NULL,
    ticket_price INTEGER NOT NULL CHECK (ticket_price >= 0),
    max_tickets INTEGER NOT NULL CHECK (max_tickets > 0),
    sold_tickets INTEGER NOT NULL DEFAULT 0,
    image_url TEXT,
    contract_address TEXT,
    created_by TEXT REFERENCES users(id),
    created_at TEXT NOT NULL,
    CHECK (sold_tickets >= 0 AND sold_tickets <= max_tickets)
);
CREATE INDEX IF NOT EXISTS idx_events_date ON events(event_date);

CREATE TABLE IF NOT EXISTS tickets (
    id TEXT PRIMARY KEY,
    event_id TEXT NOT NULL REFERENCES events(id),
    owner_id TEXT NOT NULL REFERENCES users(id),
    token_id TEXT UNIQUE,
    purchase_price INTEGER NOT NULL,
    is_used INTEGER NOT NULL DEFAULT 0,
    holder_did TEXT,
    issuance_status TEXT NOT NULL DEFAULT 'pending',
    issuance_error TEXT,
    purchased_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_tickets_owner ON tickets(owner_id);
CREATE INDEX IF NOT EXISTS idx_tickets_event ON tickets(event_id);

-- user_id is not a foreign key: credentials are kept even when the
-- owning user cannot be resolved
CREATE TABLE IF NOT EXISTS fan_credentials (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    artist_name TEXT NOT NULL,
    credential_type TEXT NOT NULL,
    credential_data TEXT,
    issued_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_credentials_user ON fan_credentials(user_id);
"""


def _ts(value: datetime) -> str:
    # Fixed width so lexical order matches chronological order
    return value.isoformat(timespec="microseconds")


def _new_id() -> str:
    return str(uuid.uuid4())


class SQLiteEntityStore:
    """SQLite-backed implementation of the EntityStore protocol.

    One aiosqlite connection is shared by all coroutines; every write runs
    under ``_write_lock`` so a multi-statement transaction is never
    interleaved with (or committed by) another coroutine's write.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path
        self._db: aiosqlite.Connection | None = None
        self._write_lock = asyncio.Lock()

    async def initialize(self) -> None:
        if not self._db_path:
            raise ConfigurationError(
                "Database not available. Please configure a database path.",
                details="set FANPASS_DB_PATH or [storage] db_path",
            )
        if self._db_path != ":memory:":
            Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
        self._db = await aiosqlite.connect(self._db_path)
        self._db.row_factory = aiosqlite.Row
        await self._db.execute("PRAGMA foreign_keys = ON")
        await self._db.executescript(SCHEMA)
        await self._db.commit()
        log.debug("SQLite store ready at %s", self._db_path)

    async def close(self) -> None:
        if self._db:
            await self._db.close()
            self._db = None

    @property
    def db(self) -> aiosqlite.Connection:
        assert self._db is not None, "Store not initialized. Call initialize() first."
        return self._db

    async def _fetch_one(self, sql: str, params: tuple = ()) -> aiosqlite.Row | None:
        async with self.db.execute(sql, params) as cur:
            return await cur.fetchone()

    async def _write(self, sql: str, params: tuple | list) -> int:
        """Run one write statement and commit; returns the affected row count."""
        async with self._write_lock:
            try:
                cur = await self.db.execute(sql, params)
                await self.db.commit()
            except aiosqlite.IntegrityError as exc:
                await self.db.rollback()
                raise _integrity_error(exc) from exc
            return cur.rowcount

    # ── Users ──────────────────────────────────────────────

    async def get_user(self, user_id: str) -> User | None:
        row = await self._fetch_one("SELECT * FROM users WHERE id=?", (user_id,))
        return _row_to_user(row) if row else None

    async def get_user_by_wallet_address(self, wallet_address: str) -> User | None:
        row = await self._fetch_one(
            "SELECT * FROM users WHERE wallet_address=? LIMIT 1", (wallet_address,)
        )
        return _row_to_user(row) if row else None

    async def create_user(self, data: InsertUser) -> User:
        user = User(
            id=_new_id(),
            wallet_address=data.wallet_address,
            moca_id=data.moca_id,
            username=data.username,
            created_at=utcnow(),
        )
        await self._write(
            "INSERT INTO users (id, wallet_address, moca_id, username,"
            " reputation_score, verified_fan, created_at)"
            " VALUES (?, ?, ?, ?, 0, 0, ?)",
            (user.id, user.wallet_address, user.moca_id, user.username, _ts(user.created_at)),
        )
        return user

    async def update_user(
        self,
        user_id: str,
        moca_id: str | None = None,
        username: str | None = None,
    ) -> User | None:
        updates: list[str] = []
        params: list = []
        if moca_id is not None:
            updates.append("moca_id=?")
            params.append(moca_id)
        if username is not None:
            updates.append("username=?")
            params.append(username)
        if updates:
            params.append(user_id)
            await self._write(f"UPDATE users SET {', '.join(updates)} WHERE id=?", params)
        return await self.get_user(user_id)

    async def apply_reputation(self, user_id: str, points: int) -> User | None:
        changed = await self._write(
            "UPDATE users SET reputation_score = reputation_score + ?, verified_fan = 1"
            " WHERE id=?",
            (points, user_id),
        )
        if not changed:
            return None
        return await self.get_user(user_id)

    # ── Events ─────────────────────────────────────────────

    async def get_event(self, event_id: str) -> Event | None:
        row = await self._fetch_one("SELECT * FROM events WHERE id=?", (event_id,))
        return _row_to_event(row) if row else None

    async def get_all_events(self) -> list[Event]:
        async with self.db.execute(
            "SELECT * FROM events ORDER BY event_date DESC, rowid DESC"
        ) as cur:
            return [_row_to_event(row) async for row in cur]

    async def create_event(self, data: InsertEvent) -> Event:
        if data.created_by is not None and await self.get_user(data.created_by) is None:
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
        await self._write(
            "INSERT INTO events (id, title, description, artist_name, venue, event_date,"
            " ticket_price, max_tickets, sold_tickets, image_url, contract_address,"
            " created_by, created_at)"
            " VALUES (?, ?, ?, ?, ?, ?, ?, ?, 0, ?, NULL, ?, ?)",
            (
                event.id, event.title, event.description, event.artist_name,
                event.venue, _ts(event.event_date), event.ticket_price,
                event.max_tickets, event.image_url, event.created_by,
                _ts(event.created_at),
            ),
        )
        return event

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
        fields = {
            "title": title,
            "description": description,
            "venue": venue,
            "event_date": _ts(event_date) if event_date is not None else None,
            "ticket_price": ticket_price,
            "image_url": image_url,
            "contract_address": contract_address,
        }
        updates = [f"{name}=?" for name, value in fields.items() if value is not None]
        params = [value for value in fields.values() if value is not None]
        if updates:
            params.append(event_id)
            await self._write(f"UPDATE events SET {', '.join(updates)} WHERE id=?", params)
        return await self.get_event(event_id)

    # ── Tickets ────────────────────────────────────────────

    async def get_ticket(self, ticket_id: str) -> Ticket | None:
        row = await self._fetch_one("SELECT * FROM tickets WHERE id=?", (ticket_id,))
        return _row_to_ticket(row) if row else None

    async def get_tickets_by_user(self, user_id: str) -> list[Ticket]:
        async with self.db.execute(
            "SELECT * FROM tickets WHERE owner_id=? ORDER BY purchased_at DESC, rowid DESC",
            (user_id,),
        ) as cur:
            return [_row_to_ticket(row) async for row in cur]

    async def get_tickets_by_event(self, event_id: str) -> list[Ticket]:
        async with self.db.execute(
            "SELECT * FROM tickets WHERE event_id=? ORDER BY purchased_at DESC, rowid DESC",
            (event_id,),
        ) as cur:
            return [_row_to_ticket(row) async for row in cur]

    async def create_ticket(self, data: InsertTicket) -> Ticket:
        await self._check_ticket_refs(data)
        ticket = _new_ticket(data)
        async with self._write_lock:
            try:
                await self._insert_ticket(ticket)
                await self.db.commit()
            except aiosqlite.IntegrityError as exc:
                await self.db.rollback()
                raise _integrity_error(exc) from exc
        return ticket

    async def reserve_ticket(self, data: InsertTicket) -> Ticket | None:
        await self._check_ticket_refs(data)
        ticket = _new_ticket(data)
        async with self._write_lock:
            try:
                # Conditional increment: the capacity check and the write are
                # one statement, so concurrent buyers cannot both take the
                # last slot.
                cur = await self.db.execute(
                    "UPDATE events SET sold_tickets = sold_tickets + 1"
                    " WHERE id=? AND sold_tickets < max_tickets",
                    (data.event_id,),
                )
                if cur.rowcount == 0:
                    await self.db.rollback()
                    return None
                await self._insert_ticket(ticket)
                await self.db.commit()
            except aiosqlite.IntegrityError as exc:
                await self.db.rollback()
                raise _integrity_error(exc) from exc
            except BaseException:
                await self.db.rollback()
                raise
        return ticket

    async def _check_ticket_refs(self, data: InsertTicket) -> None:
        if await self._fetch_one("SELECT 1 FROM events WHERE id=?", (data.event_id,)) is None:
            raise NotFoundError("Event", data.event_id)
        if await self._fetch_one("SELECT 1 FROM users WHERE id=?", (data.owner_id,)) is None:
            raise NotFoundError("User", data.owner_id)

    async def _insert_ticket(self, ticket: Ticket) -> None:
        await self.db.execute(
            "INSERT INTO tickets (id, event_id, owner_id, token_id, purchase_price,"
            " is_used, holder_did, issuance_status, issuance_error, purchased_at)"
            " VALUES (?, ?, ?, NULL, ?, 0, ?, ?, NULL, ?)",
            (
                ticket.id, ticket.event_id, ticket.owner_id, ticket.purchase_price,
                ticket.holder_did, ticket.issuance_status.value, _ts(ticket.purchased_at),
            ),
        )

    async def update_ticket(
        self,
        ticket_id: str,
        token_id: str | None = None,
        is_used: bool | None = None,
    ) -> Ticket | None:
        if is_used is False:
            current = await self.get_ticket(ticket_id)
            if current is not None and current.is_used:
                raise AlreadyRedeemedError(ticket_id)
        updates: list[str] = []
        params: list = []
        if token_id is not None:
            updates.append("token_id=?")
            params.append(token_id)
        if is_used is not None:
            # is_used only ever moves 0 -> 1
            updates.append("is_used=MAX(is_used, ?)")
            params.append(1 if is_used else 0)
        if updates:
            params.append(ticket_id)
            await self._write(f"UPDATE tickets SET {', '.join(updates)} WHERE id=?", params)
        return await self.get_ticket(ticket_id)

    async def redeem_ticket(self, ticket_id: str) -> Ticket | None:
        changed = await self._write(
            "UPDATE tickets SET is_used=1 WHERE id=? AND is_used=0", (ticket_id,)
        )
        if not changed:
            return None
        return await self.get_ticket(ticket_id)

    async def set_ticket_issuance(
        self,
        ticket_id: str,
        status: IssuanceStatus,
        token_id: str | None = None,
        error: str | None = None,
    ) -> Ticket | None:
        changed = await self._write(
            "UPDATE tickets SET issuance_status=?, issuance_error=?,"
            " token_id=COALESCE(?, token_id) WHERE id=?",
            (IssuanceStatus(status).value, error, token_id, ticket_id),
        )
        if not changed:
            return None
        return await self.get_ticket(ticket_id)

    # ── Fan credentials ────────────────────────────────────

    async def get_fan_credential(self, credential_id: str) -> FanCredential | None:
        row = await self._fetch_one(
            "SELECT * FROM fan_credentials WHERE id=?", (credential_id,)
        )
        return _row_to_credential(row) if row else None

    async def get_credentials_by_user(self, user_id: str) -> list[FanCredential]:
        async with self.db.execute(
            "SELECT * FROM fan_credentials WHERE user_id=? ORDER BY issued_at DESC, rowid DESC",
            (user_id,),
        ) as cur:
            return [_row_to_credential(row) async for row in cur]

    async def create_fan_credential(self, data: InsertFanCredential) -> FanCredential:
        credential = FanCredential(
            id=_new_id(),
            user_id=data.user_id,
            artist_name=data.artist_name,
            credential_type=data.credential_type,
            credential_data=data.credential_data,
            issued_at=utcnow(),
        )
        await self._write(
            "INSERT INTO fan_credentials"
            " (id, user_id, artist_name, credential_type, credential_data, issued_at)"
            " VALUES (?, ?, ?, ?, ?, ?)",
            (
                credential.id, credential.user_id, credential.artist_name,
                credential.credential_type, credential.credential_data,
                _ts(credential.issued_at),
            ),
        )
        return credential


def _new_ticket(data: InsertTicket) -> Ticket:
    return Ticket(
        id=_new_id(),
        event_id=data.event_id,
        owner_id=data.owner_id,
        purchase_price=data.purchase_price,
        holder_did=data.holder_did,
        purchased_at=utcnow(),
    )


def _integrity_error(exc: aiosqlite.IntegrityError) -> TicketingError:
    """Map a constraint violation onto the shared error taxonomy."""
    msg = str(exc)
    if "UNIQUE constraint failed:" in msg:
        column = msg.split("failed:", 1)[1].split(",")[0].strip()
        return DuplicateError(column)
    if "FOREIGN KEY constraint failed" in msg:
        return NotFoundError("Referenced entity")
    return ConflictError(msg)


# ── Row converters ─────────────────────────────────────────


def _row_to_user(row: aiosqlite.Row) -> User:
    return User(
        id=row["id"],
        wallet_address=row["wallet_address"],
        moca_id=row["moca_id"],
        username=row["username"],
        reputation_score=row["reputation_score"],
        verified_fan=bool(row["verified_fan"]),
        created_at=datetime.fromisoformat(row["created_at"]),
    )


def _row_to_event(row: aiosqlite.Row) -> Event:
    return Event(
        id=row["id"],
        title=row["title"],
        description=row["description"],
        artist_name=row["artist_name"],
        venue=row["venue"],
        event_date=datetime.fromisoformat(row["event_date"]),
        ticket_price=row["ticket_price"],
        max_tickets=row["max_tickets"],
        sold_tickets=row["sold_tickets"],
        image_url=row["image_url"],
        contract_address=row["contract_address"],
        created_by=row["created_by"],
        created_at=datetime.fromisoformat(row["created_at"]),
    )


def _row_to_ticket(row: aiosqlite.Row) -> Ticket:
    return Ticket(
        id=row["id"],
        event_id=row["event_id"],
        owner_id=row["owner_id"],
        token_id=row["token_id"],
        purchase_price=row["purchase_price"],
        is_used=bool(row["is_used"]),
        holder_did=row["holder_did"],
        issuance_status=IssuanceStatus(row["issuance_status"]),
        issuance_error=row["issuance_error"],
        purchased_at=datetime.fromisoformat(row["purchased_at"]),
    )


def _row_to_credential(row: aiosqlite.Row) -> FanCredential:
    return FanCredential(
        id=row["id"],
        user_id=row["user_id"],
        artist_name=row["artist_name"],
        credential_type=row["credential_type"],
        credential_data=row["credential_data"],
        issued_at=datetime.fromisoformat(row["issued_at"]),
    )
