"""Application wiring - builds the store once and injects it everywhere."""

from __future__ import annotations

import logging

from fanpass.api.service import TicketingService
from fanpass.auth.token import JwtTokenIssuer
from fanpass.interfaces.issuance import CredentialIssuer
from fanpass.interfaces.store import EntityStore
from fanpass.issuance.client import HttpCredentialIssuer
from fanpass.issuance.coordinator import IssuanceCoordinator
from fanpass.models.config import AppConfig, StorageBackend
from fanpass.storage.memory import MemoryEntityStore
from fanpass.storage.sqlite import SQLiteEntityStore
from fanpass.workflow.purchase import PurchaseWorkflow
from fanpass.workflow.reputation import CredentialRecorder

log = logging.getLogger(__name__)


def build_store(cfg: AppConfig) -> EntityStore:
    """Construct the configured EntityStore backend (not yet initialized)."""
    if cfg.storage_backend == StorageBackend.MEMORY:
        return MemoryEntityStore()
    return SQLiteEntityStore(cfg.db_path)


class TicketingApp:
    """Owns the component graph for one process.

    Usage::

        async with TicketingApp(cfg) as app:
            await app.service.purchase_ticket(event_id, user_id, user_did)

    A configured signing key is parsed here, so a malformed key stops the
    application at startup. A missing key only fails the operations that
    need one.
    """

    def __init__(
        self,
        cfg: AppConfig,
        store: EntityStore | None = None,
        credential_issuer: CredentialIssuer | None = None,
    ) -> None:
        self._cfg = cfg
        self.store = store or build_store(cfg)

        self.token_issuer: JwtTokenIssuer | None = None
        if cfg.auth.private_key:
            self.token_issuer = JwtTokenIssuer(
                cfg.auth.private_key, key_id=cfg.auth.key_id, ttl=cfg.auth.token_ttl,
            )

        self.credential_issuer = credential_issuer or HttpCredentialIssuer(
            api_url=cfg.issuance.api_url,
            program_id=cfg.issuance.program_id,
            issuer_did=cfg.issuance.issuer_did,
            timeout=cfg.issuance.timeout,
        )

        self.workflow = PurchaseWorkflow(self.store)
        self.recorder = CredentialRecorder(self.store)
        self.issuance = IssuanceCoordinator(
            store=self.store,
            workflow=self.workflow,
            token_issuer=self.token_issuer,
            credential_issuer=self.credential_issuer,
            partner_id=cfg.auth.partner_id,
        )
        self.service = TicketingService(
            store=self.store,
            workflow=self.workflow,
            recorder=self.recorder,
            token_issuer=self.token_issuer,
            issuance=self.issuance,
            partner_id=cfg.auth.partner_id,
        )

    async def start(self) -> None:
        log.info("Starting fanpass (storage: %s)", self._cfg.storage_backend.value)
        await self.store.initialize()

    async def stop(self) -> None:
        await self.credential_issuer.close()
        await self.store.close()
        log.debug("fanpass shut down cleanly")

    async def __aenter__(self) -> "TicketingApp":
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()
