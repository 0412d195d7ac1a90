"""HTTP client for the external credential-issuance service."""

from __future__ import annotations

import logging

import httpx

from fanpass.errors import UpstreamFailure
from fanpass.models.records import IssuedCredential

log = logging.getLogger(__name__)


class HttpCredentialIssuer:
    """Issues ticket credentials through the partner issuance API.

    POSTs ``{issuerDid, programId, credentialSubject}`` to
    ``{api_url}/credentials/issue`` with the partner JWT as bearer token.
    Every failure mode (transport, HTTP status, malformed response) is
    raised as UpstreamFailure.
    """

    def __init__(
        self,
        api_url: str,
        program_id: str,
        issuer_did: str,
        timeout: int = 30,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = api_url.rstrip("/")
        self._program_id = program_id
        self._issuer_did = issuer_did
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout, connect=10))

    def _url(self, endpoint: str) -> str:
        return f"{self._base_url}/{endpoint}"

    async def issue(self, auth_token: str, credential_subject: dict) -> IssuedCredential:
        ticket_id = credential_subject.get("ticketId", "?")
        log.info("Requesting credential issuance for ticket %s", ticket_id)
        body = {
            "issuerDid": self._issuer_did,
            "programId": self._program_id,
            "credentialSubject": credential_subject,
        }
        try:
            resp = await self._client.post(
                self._url("credentials/issue"),
                json=body,
                headers={"Authorization": f"Bearer {auth_token}"},
            )
        except httpx.HTTPError as exc:
            log.error("Issuance service unreachable: %s", exc)
            raise UpstreamFailure("Credential issuance service unreachable", details=str(exc)) from exc

        if resp.status_code >= 400:
            log.error("Issuance rejected for ticket %s: HTTP %d", ticket_id, resp.status_code)
            raise UpstreamFailure(
                f"Credential issuance rejected: HTTP {resp.status_code}",
                details=resp.text[:500],
                status_code=resp.status_code,
            )

        try:
            data = resp.json()
        except ValueError as exc:
            raise UpstreamFailure("Credential issuance returned invalid JSON") from exc

        credential_id = None
        if isinstance(data, dict):
            credential_id = data.get("credentialId") or data.get("id")
        if not credential_id:
            raise UpstreamFailure(
                "Credential issuance response has no credential id", details=str(data)[:500],
            )
        return IssuedCredential(credential_id=str(credential_id), raw=data)

    async def close(self) -> None:
        await self._client.aclose()
