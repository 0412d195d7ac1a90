"""Configuration models for the ticketing backend."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

DEFAULT_KEY_ID = "6386cb4d-c0de-4629-a412-8dcf6f50f805"


class StorageBackend(str, Enum):
    """Which EntityStore implementation the application builds."""

    MEMORY = "memory"  # ephemeral, tests and demos
    SQLITE = "sqlite"  # durable


@dataclass
class AuthConfig:
    """Signing material for credential-issuance authorization tokens."""

    partner_id: str = ""
    private_key: str = ""  # PKCS#8 PEM, loaded from FANPASS_PRIVATE_KEY
    key_id: str = DEFAULT_KEY_ID
    token_ttl: int = 3600  # seconds


@dataclass
class IssuanceConfig:
    """External credential-issuance service endpoint."""

    api_url: str = "https://credential.api.sandbox.air3.com"
    program_id: str = "c21ps0g0zru9b00j5755QP"  # ticket credential program
    issuer_did: str = "did:air:id:test:4P5XMPhnmppTr49yKZNjSMqMSyvciAHgbT1KJfLZvL"
    timeout: int = 30  # seconds


@dataclass
class AppConfig:
    """Complete application configuration."""

    log_level: str = "info"

    # Storage
    storage_backend: StorageBackend = StorageBackend.SQLITE
    db_path: str = "~/.fanpass/fanpass.db"

    auth: AuthConfig = field(default_factory=AuthConfig)
    issuance: IssuanceConfig = field(default_factory=IssuanceConfig)
