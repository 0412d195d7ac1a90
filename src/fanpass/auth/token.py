"""RS256 authorization tokens for the external credential-issuance service."""

from __future__ import annotations

import logging
import time

from jose import jwk, jwt
from jose.exceptions import JOSEError

from fanpass.errors import ConfigurationError, ValidationError
from fanpass.models.config import DEFAULT_KEY_ID

log = logging.getLogger(__name__)

ALGORITHM = "RS256"
TOKEN_SCOPE = "issue verify"


def normalize_pem(private_key: str) -> str:
    """Undo the ``\\n`` escaping PEM keys get when stored in env vars."""
    return private_key.replace("\\n", "\n").strip()


def token_payload(partner_id: str) -> dict:
    return {"partnerId": partner_id, "scope": TOKEN_SCOPE}


class JwtTokenIssuer:
    """Signs ``{partnerId, scope}`` assertions with the partner's RSA key.

    The key is parsed in the constructor so a missing or malformed key is
    reported when the issuer is built, not on the first request.
    """

    def __init__(
        self,
        private_key: str,
        key_id: str = DEFAULT_KEY_ID,
        ttl: int = 3600,
    ) -> None:
        if not private_key:
            raise ConfigurationError(
                "Server configuration error: Private key not found",
                details="set FANPASS_PRIVATE_KEY or [auth] private_key",
            )
        pem = normalize_pem(private_key)
        try:
            key = jwk.construct(pem, ALGORITHM)
        except (JOSEError, ValueError, TypeError) as exc:
            raise ConfigurationError(
                "Server configuration error: Private key is malformed", details=str(exc),
            ) from exc
        if key.is_public():
            raise ConfigurationError(
                "Server configuration error: a private key is required, got a public key",
            )
        self._pem = pem
        self._key_id = key_id
        self._ttl = ttl

    def issue_auth_token(self, partner_id: str) -> str:
        if not partner_id:
            raise ValidationError("Partner ID required")
        claims = token_payload(partner_id)
        claims["exp"] = int(time.time()) + self._ttl
        try:
            token = jwt.encode(
                claims, self._pem, algorithm=ALGORITHM, headers={"kid": self._key_id},
            )
        except JOSEError as exc:
            log.error("Error generating JWT: %s", exc)
            raise ConfigurationError("Failed to generate JWT", details=str(exc)) from exc
        log.debug("Issued auth token for partner %s (ttl %ds)", partner_id, self._ttl)
        return token
