"""Ticketing service - the operation surface exposed to UI and API callers."""

from __future__ import annotations

import logging
from typing import Any

from fanpass.errors import ConfigurationError, DuplicateError, NotFoundError, ValidationError
from fanpass.interfaces.issuance import TokenIssuer
from fanpass.interfaces.store import EntityStore
from fanpass.issuance.coordinator import IssuanceCoordinator
from fanpass.models.entities import Event, FanCredential, Ticket, User
from fanpass.models.inputs import EventUpdate, InsertEvent, InsertFanCredential, InsertUser, parse_input
from fanpass.models.records import PurchaseResult
from fanpass.workflow.purchase import PurchaseWorkflow
from fanpass.workflow.reputation import CredentialRecorder

log = logging.getLogger(__name__)


class TicketingService:
    """Single entry point for external callers.

    Takes validated or raw (dict) input, delegates to the workflows and the
    store, and turns store-level absence into NotFoundError.
    """

    def __init__(
        self,
        store: EntityStore,
        workflow: PurchaseWorkflow,
        recorder: CredentialRecorder,
        token_issuer: TokenIssuer | None = None,
        issuance: IssuanceCoordinator | None = None,
        partner_id: str = "",
    ) -> None:
        self._store = store
        self._workflow = workflow
        self._recorder = recorder
        self._token_issuer = token_issuer
        self._issuance = issuance
        self._partner_id = partner_id

    # ── Users ──────────────────────────────────────────────

    async def connect_wallet(self, wallet_address: str, moca_id: str | None = None) -> User:
        """Get-or-create the user behind a wallet, backfilling moca_id."""
        if not wallet_address:
            raise ValidationError("Wallet address required")

        user = await self._store.get_user_by_wallet_address(wallet_address)
        if user is None:
            insert = parse_input(
                InsertUser, {"wallet_address": wallet_address, "moca_id": moca_id or None},
            )
            try:
                user = await self._store.create_user(insert)
                log.info("New user %s for wallet %s", user.id, wallet_address)
                return user
            except DuplicateError:
                # A concurrent connect created it first
                user = await self._store.get_user_by_wallet_address(wallet_address)
                if user is None:
                    raise

        if moca_id and user.moca_id != moca_id:
            user = await self._store.update_user(user.id, moca_id=moca_id) or user
            log.info("Backfilled moca_id for user %s", user.id)
        return user

    async def get_user(self, user_id: str) -> User:
        user = await self._store.get_user(user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        return user

    async def get_user_by_wallet(self, wallet_address: str) -> User:
        user = await self._store.get_user_by_wallet_address(wallet_address)
        if user is None:
            raise NotFoundError("User", wallet_address)
        return user

    # ── Events ─────────────────────────────────────────────

    async def list_events(self) -> list[Event]:
        return await self._store.get_all_events()

    async def get_event(self, event_id: str) -> Event:
        event = await self._store.get_event(event_id)
        if event is None:
            raise NotFoundError("Event", event_id)
        return event

    async def create_event(self, data: InsertEvent | dict[str, Any]) -> Event:
        insert = parse_input(InsertEvent, data)
        event = await self._store.create_event(insert)
        log.info(
            "Event %s created: %r by %s, %d tickets at %d",
            event.id, event.title, event.artist_name, event.max_tickets, event.ticket_price,
        )
        return event

    async def update_event(self, event_id: str, data: EventUpdate | dict[str, Any]) -> Event:
        changes = parse_input(EventUpdate, data)
        event = await self._store.update_event(event_id, **changes.model_dump(exclude_none=True))
        if event is None:
            raise NotFoundError("Event", event_id)
        return event

    # ── Tickets ────────────────────────────────────────────

    async def purchase_ticket(self, event_id: str, user_id: str, user_did: str) -> PurchaseResult:
        return await self._workflow.purchase_ticket(event_id, user_id, user_did)

    async def redeem_ticket(self, ticket_id: str) -> Ticket:
        return await self._workflow.redeem_ticket(ticket_id)

    async def get_ticket(self, ticket_id: str) -> Ticket:
        ticket = await self._store.get_ticket(ticket_id)
        if ticket is None:
            raise NotFoundError("Ticket", ticket_id)
        return ticket

    async def tickets_for_user(self, user_id: str) -> list[Ticket]:
        return await self._store.get_tickets_by_user(user_id)

    async def tickets_for_event(self, event_id: str) -> list[Ticket]:
        return await self._store.get_tickets_by_event(event_id)

    # ── Credentials ────────────────────────────────────────

    async def record_credential(self, data: InsertFanCredential | dict[str, Any]) -> FanCredential:
        return await self._recorder.record_credential(data)

    async def verify_credential(self, user_id: str, artist_name: str, credential_type: str) -> bool:
        return await self._recorder.verify_credential(user_id, artist_name, credential_type)

    async def credentials_for_user(self, user_id: str) -> list[FanCredential]:
        return await self._recorder.credentials_for_user(user_id)

    # ── Issuance ───────────────────────────────────────────

    def issue_auth_token(self, partner_id: str | None = None) -> str:
        if self._token_issuer is None:
            raise ConfigurationError("Server configuration error: Private key not found")
        return self._token_issuer.issue_auth_token(partner_id or self._partner_id)

    async def issue_ticket_credential(self, ticket_id: str) -> Ticket:
        if self._issuance is None:
            raise ConfigurationError("Credential issuance is not configured")
        return await self._issuance.issue_ticket_credential(ticket_id)
