"""Workflow result types and the credential-subject payload."""

from __future__ import annotations

from dataclasses import dataclass, field

from fanpass.models.entities import Ticket, to_dict

TICKET_TYPE_GENERAL = "general"
SEAT_GENERAL_ADMISSION = "General Admission"

# Anti-scalping cap: resale at most 110% of face value
RESALE_CAP_NUMERATOR = 11
RESALE_CAP_DENOMINATOR = 10


def max_resale_price(ticket_price: int) -> int:
    """floor(ticket_price * 1.10), computed without float rounding."""
    return ticket_price * RESALE_CAP_NUMERATOR // RESALE_CAP_DENOMINATOR


@dataclass
class CredentialSubject:
    """Ticket credential claims handed to the external issuance service.

    The field set is fixed by the downstream schema; ``to_payload`` emits the
    exact key names it expects.
    """

    ticket_id: str
    event_name: str
    artist_name: str
    event_date: str  # YYYY-MM-DD
    venue: str
    purchase_price: str
    original_buyer: str  # holder DID
    purchase_timestamp: str  # YYYY-MM-DD
    valid_until: str  # YYYY-MM-DD, same as event_date
    max_resale_price: str
    ticket_type: str = TICKET_TYPE_GENERAL
    transferable: bool = False
    seat_info: str = SEAT_GENERAL_ADMISSION
    is_used: bool = False

    def to_payload(self) -> dict:
        return {
            "ticketId": self.ticket_id,
            "eventName": self.event_name,
            "artistName": self.artist_name,
            "eventDate": self.event_date,
            "venue": self.venue,
            "ticketType": self.ticket_type,
            "purchasePrice": self.purchase_price,
            "originalBuyer": self.original_buyer,
            "transferable": self.transferable,
            "purchaseTimestamp": self.purchase_timestamp,
            "validUntil": self.valid_until,
            "seatInfo": self.seat_info,
            "isUsed": self.is_used,
            "maxResalePrice": self.max_resale_price,
        }


@dataclass
class PurchaseResult:
    """Result of a successful ticket purchase."""

    ticket: Ticket
    credential_subject: CredentialSubject
    message: str = "Ticket purchased successfully. Ready for credential issuance."

    def to_dict(self) -> dict:
        return {
            "ticket": to_dict(self.ticket),
            "credentialSubject": self.credential_subject.to_payload(),
            "message": self.message,
        }


@dataclass
class IssuedCredential:
    """Acknowledgement from the external credential-issuance service."""

    credential_id: str
    raw: dict = field(default_factory=dict)
