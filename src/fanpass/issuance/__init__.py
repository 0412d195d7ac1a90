"""External credential issuance: HTTP client and ticket-keyed coordinator."""

from fanpass.issuance.client import HttpCredentialIssuer
from fanpass.issuance.coordinator import IssuanceCoordinator

__all__ = ["HttpCredentialIssuer", "IssuanceCoordinator"]
