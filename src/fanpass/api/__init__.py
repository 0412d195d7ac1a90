"""API components - the ticketing service facade."""

from fanpass.api.service import TicketingService

__all__ = ["TicketingService"]
