"""Data models for the fanpass ticketing backend."""

from fanpass.models.entities import (
    CredentialType,
    Event,
    FanCredential,
    IssuanceStatus,
    Ticket,
    User,
    to_dict,
)
from fanpass.models.inputs import (
    EventUpdate,
    InsertEvent,
    InsertFanCredential,
    InsertTicket,
    InsertUser,
    parse_input,
)
from fanpass.models.records import (
    CredentialSubject,
    IssuedCredential,
    PurchaseResult,
    max_resale_price,
)
from fanpass.models.config import AppConfig, AuthConfig, IssuanceConfig, StorageBackend

__all__ = [
    "CredentialType", "Event", "FanCredential", "IssuanceStatus", "Ticket", "User",
    "to_dict",
    "EventUpdate", "InsertEvent", "InsertFanCredential", "InsertTicket", "InsertUser",
    "parse_input",
    "CredentialSubject", "IssuedCredential", "PurchaseResult", "max_resale_price",
    "AppConfig", "AuthConfig", "IssuanceConfig", "StorageBackend",
]
