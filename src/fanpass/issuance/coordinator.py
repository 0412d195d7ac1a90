"""Retry-safe, ticket-keyed credential issuance."""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict

from fanpass.errors import ConfigurationError, NotFoundError, UpstreamFailure
from fanpass.interfaces.issuance import CredentialIssuer, TokenIssuer
from fanpass.interfaces.store import EntityStore
from fanpass.models.entities import IssuanceStatus, Ticket
from fanpass.workflow.purchase import PurchaseWorkflow

log = logging.getLogger(__name__)


class IssuanceCoordinator:
    """Drives a purchased ticket through external credential issuance.

    A purchase is committed before issuance is attempted and is never rolled
    back. Instead each ticket carries an issuance status:

    pending -> issued       on success (token_id set to the credential id)
    pending|failed -> failed on UpstreamFailure (error kept for reconciliation)

    Calling ``issue_ticket_credential`` again retries a failed ticket and is
    a no-op for an issued one. Calls for the same ticket are serialised, so
    concurrent callers reach the issuer once and share its credential id.
    """

    def __init__(
        self,
        store: EntityStore,
        workflow: PurchaseWorkflow,
        token_issuer: TokenIssuer | None,
        credential_issuer: CredentialIssuer,
        partner_id: str,
    ) -> None:
        self._store = store
        self._workflow = workflow
        self._token_issuer = token_issuer
        self._credential_issuer = credential_issuer
        self._partner_id = partner_id
        self._ticket_locks: dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def issue_ticket_credential(self, ticket_id: str) -> Ticket:
        if await self._store.get_ticket(ticket_id) is None:
            raise NotFoundError("Ticket", ticket_id)

        async with self._ticket_locks[ticket_id]:
            # Re-read under the lock; a concurrent call may have issued it
            ticket = await self._store.get_ticket(ticket_id)
            if ticket is None:
                raise NotFoundError("Ticket", ticket_id)
            if ticket.issuance_status == IssuanceStatus.ISSUED:
                log.info("Ticket %s already issued as %s, skipping", ticket_id, ticket.token_id)
                return ticket
            return await self._issue(ticket)

    async def _issue(self, ticket: Ticket) -> Ticket:
        ticket_id = ticket.id
        subject = await self._workflow.credential_subject_for(ticket_id)
        if self._token_issuer is None:
            raise ConfigurationError("Server configuration error: Private key not found")
        if not self._partner_id:
            raise ConfigurationError(
                "Server configuration error: Partner ID not configured",
                details="set FANPASS_PARTNER_ID or [auth] partner_id",
            )
        token = self._token_issuer.issue_auth_token(self._partner_id)

        try:
            issued = await self._credential_issuer.issue(token, subject.to_payload())
        except UpstreamFailure as exc:
            await self._store.set_ticket_issuance(
                ticket_id, IssuanceStatus.FAILED, error=exc.message,
            )
            log.error("Issuance failed for ticket %s: %s", ticket_id, exc.message)
            raise

        updated = await self._store.set_ticket_issuance(
            ticket_id, IssuanceStatus.ISSUED, token_id=issued.credential_id,
        )
        log.info("Ticket %s issued as credential %s", ticket_id, issued.credential_id)
        return updated if updated is not None else ticket
