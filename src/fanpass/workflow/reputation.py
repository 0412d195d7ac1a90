"""Credential recording and reputation scoring."""

from __future__ import annotations

import logging
from typing import Any

from fanpass.errors import ValidationError
from fanpass.interfaces.store import EntityStore
from fanpass.models.entities import CredentialType, FanCredential
from fanpass.models.inputs import InsertFanCredential, parse_input

log = logging.getLogger(__name__)

REPUTATION_POINTS = {
    CredentialType.EARLY_SUPPORTER.value: 100,
    CredentialType.ATTENDANCE.value: 50,
}
DEFAULT_REPUTATION_POINTS = 25


def reputation_delta(credential_type: str) -> int:
    """Points awarded for recording a credential of ``credential_type``."""
    return REPUTATION_POINTS.get(credential_type, DEFAULT_REPUTATION_POINTS)


class CredentialRecorder:
    """Persists fan credentials and credits the owner's reputation."""

    def __init__(self, store: EntityStore) -> None:
        self._store = store

    async def record_credential(self, data: InsertFanCredential | dict[str, Any]) -> FanCredential:
        """Persist a credential, then bump the owner's score.

        The reputation step is best-effort: an unknown user does not prevent
        the credential from being stored.
        """
        insert = parse_input(InsertFanCredential, data)
        credential = await self._store.create_fan_credential(insert)

        points = reputation_delta(insert.credential_type)
        user = await self._store.apply_reputation(insert.user_id, points)
        if user is None:
            log.warning(
                "Credential %s recorded for unknown user %s, reputation not updated",
                credential.id, insert.user_id,
            )
        else:
            log.info(
                "Credential %s (%s/%s) recorded: user %s +%d -> %d",
                credential.id, insert.artist_name, insert.credential_type,
                user.id, points, user.reputation_score,
            )
        return credential

    async def verify_credential(self, user_id: str, artist_name: str, credential_type: str) -> bool:
        """True if the user holds a credential with this exact artist and type.

        Arguments are whitespace-stripped the same way recorded credentials are.
        """
        user_id = (user_id or "").strip()
        artist_name = (artist_name or "").strip()
        credential_type = (credential_type or "").strip()
        if not user_id or not artist_name or not credential_type:
            raise ValidationError("Missing required fields")
        credentials = await self._store.get_credentials_by_user(user_id)
        return any(
            c.artist_name == artist_name and c.credential_type == credential_type
            for c in credentials
        )

    async def credentials_for_user(self, user_id: str) -> list[FanCredential]:
        return await self._store.get_credentials_by_user(user_id)
