"""Purchase workflow - inventory-safe ticket sales and redemption."""

from __future__ import annotations

import logging

from fanpass.errors import (
    AlreadyRedeemedError,
    NotFoundError,
    SoldOutError,
    ValidationError,
)
from fanpass.interfaces.store import EntityStore
from fanpass.models.entities import Event, Ticket
from fanpass.models.inputs import InsertTicket
from fanpass.models.records import CredentialSubject, PurchaseResult, max_resale_price

log = logging.getLogger(__name__)


def build_credential_subject(event: Event, ticket: Ticket, user_did: str) -> CredentialSubject:
    """Bind a ticket to the buyer's external identity.

    Prices come from the ticket's purchase snapshot, not the live event, so
    the subject of a given ticket is the same every time it is rebuilt.
    """
    event_day = event.event_date.date().isoformat()
    return CredentialSubject(
        ticket_id=ticket.id,
        event_name=event.title,
        artist_name=event.artist_name,
        event_date=event_day,
        venue=event.venue,
        purchase_price=str(ticket.purchase_price),
        original_buyer=user_did,
        purchase_timestamp=ticket.purchased_at.date().isoformat(),
        valid_until=event_day,
        max_resale_price=str(max_resale_price(ticket.purchase_price)),
        is_used=False,
    )


class PurchaseWorkflow:
    """Sells tickets against an event's inventory.

    The capacity check and the sold-count increment are delegated to the
    store's atomic ``reserve_ticket``; the read-side check here only lets
    sold-out events fail fast.
    """

    def __init__(self, store: EntityStore) -> None:
        self._store = store

    async def purchase_ticket(self, event_id: str, user_id: str, user_did: str) -> PurchaseResult:
        """Sell one ticket for ``event_id`` to ``user_id``.

        Raises ValidationError, NotFoundError (event or user) or
        SoldOutError. Nothing is written unless a ticket is returned.
        """
        if not event_id or not user_id or not user_did:
            raise ValidationError("Event ID, User ID, and User DID required")

        event = await self._store.get_event(event_id)
        if event is None:
            raise NotFoundError("Event", event_id)

        if event.available <= 0:
            log.info("Purchase rejected, event %s is sold out", event_id)
            raise SoldOutError(event_id)

        user = await self._store.get_user(user_id)
        if user is None:
            raise NotFoundError("User", user_id)

        ticket = await self._store.reserve_ticket(
            InsertTicket(
                event_id=event.id,
                owner_id=user.id,
                purchase_price=event.ticket_price,
                holder_did=user_did,
            )
        )
        if ticket is None:
            log.warning("Lost the race for the last ticket of event %s", event_id)
            raise SoldOutError(event_id)

        log.info(
            "Ticket %s sold: event=%s owner=%s price=%d",
            ticket.id, event.id, user.id, ticket.purchase_price,
        )
        return PurchaseResult(
            ticket=ticket,
            credential_subject=build_credential_subject(event, ticket, user_did),
        )

    async def credential_subject_for(self, ticket_id: str) -> CredentialSubject:
        """Rebuild the credential subject of an existing ticket."""
        ticket = await self._store.get_ticket(ticket_id)
        if ticket is None:
            raise NotFoundError("Ticket", ticket_id)
        event = await self._store.get_event(ticket.event_id)
        if event is None:
            raise NotFoundError("Event", ticket.event_id)
        holder = ticket.holder_did
        if not holder:
            owner = await self._store.get_user(ticket.owner_id)
            holder = owner.moca_id if owner else None
        if not holder:
            raise ValidationError(
                "Ticket has no holder DID", details=f"ticket {ticket_id}",
            )
        return build_credential_subject(event, ticket, holder)

    async def redeem_ticket(self, ticket_id: str) -> Ticket:
        """Mark a ticket used. A second redemption raises AlreadyRedeemedError."""
        if not ticket_id:
            raise ValidationError("Ticket ID required")

        ticket = await self._store.redeem_ticket(ticket_id)
        if ticket is not None:
            log.info("Ticket %s redeemed", ticket_id)
            return ticket

        existing = await self._store.get_ticket(ticket_id)
        if existing is None:
            raise NotFoundError("Ticket", ticket_id)
        raise AlreadyRedeemedError(ticket_id)
