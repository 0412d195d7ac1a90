"""Protocol interfaces for all fanpass components."""

from fanpass.interfaces.store import EntityStore
from fanpass.interfaces.issuance import CredentialIssuer, TokenIssuer

__all__ = ["EntityStore", "CredentialIssuer", "TokenIssuer"]
