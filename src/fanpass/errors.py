"""Error taxonomy shared by the store, workflows, and CLI."""

from __future__ import annotations


class TicketingError(Exception):
    """Base for every error a caller is expected to handle.

    Each subclass carries a stable ``code`` so that callers (CLI, HTTP
    layers) can map failures without matching on message text.
    """

    code = "internal_error"

    def __init__(self, message: str, details: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        data = {"error": self.code, "message": self.message}
        if self.details:
            data["details"] = self.details
        return data


class NotFoundError(TicketingError):
    code = "not_found"

    def __init__(self, entity: str, entity_id: str | None = None) -> None:
        super().__init__(f"{entity} not found", details=entity_id)
        self.entity = entity
        self.entity_id = entity_id


class ConflictError(TicketingError):
    code = "conflict"


class SoldOutError(ConflictError):
    code = "sold_out"

    def __init__(self, event_id: str) -> None:
        super().__init__("Event is sold out", details=event_id)
        self.event_id = event_id


class AlreadyRedeemedError(ConflictError):
    code = "already_redeemed"

    def __init__(self, ticket_id: str) -> None:
        super().__init__("Ticket has already been redeemed", details=ticket_id)
        self.ticket_id = ticket_id


class DuplicateError(ConflictError):
    code = "duplicate"

    def __init__(self, column: str) -> None:
        super().__init__(f"Duplicate value for {column}")
        self.column = column


class ValidationError(TicketingError):
    code = "validation_error"


class ConfigurationError(TicketingError):
    code = "configuration_error"


class UpstreamFailure(TicketingError):
    code = "upstream_failure"

    def __init__(
        self, message: str, details: str | None = None, status_code: int | None = None,
    ) -> None:
        super().__init__(message, details)
        self.status_code = status_code
