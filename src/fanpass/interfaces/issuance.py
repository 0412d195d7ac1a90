"""Protocols for the credential-issuance side: token signing and the external service."""

from __future__ import annotations

from typing import Protocol

from fanpass.models.records import IssuedCredential


class TokenIssuer(Protocol):
    """Signs short-lived authorization assertions for credential issuance."""

    def issue_auth_token(self, partner_id: str) -> str:
        ...


class CredentialIssuer(Protocol):
    """Client for the external credential-issuance service."""

    async def issue(self, auth_token: str, credential_subject: dict) -> IssuedCredential:
        """Issue one credential. Raises UpstreamFailure on any service error."""
        ...

    async def close(self) -> None:
        ...
