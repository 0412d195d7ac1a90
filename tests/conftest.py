"""Shared fixtures for fanpass tests."""

from __future__ import annotations

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from pytest_metadata.plugin import metadata_key

from fanpass.api.service import TicketingService
from fanpass.issuance.coordinator import IssuanceCoordinator
from fanpass.models.config import AppConfig, AuthConfig, IssuanceConfig, StorageBackend
from fanpass.storage.memory import MemoryEntityStore
from fanpass.storage.sqlite import SQLiteEntityStore
from fanpass.workflow.purchase import PurchaseWorkflow
from fanpass.workflow.reputation import CredentialRecorder

from tests.mocks import MockCredentialIssuer, MockTokenIssuer

TEST_PARTNER_ID = "partner-test-0001"
TEST_ISSUANCE_URL = "http://127.0.0.1:9299"


# ── Report metadata ──────────────────────────────────────────────


def pytest_configure(config):
    """Add backend info to the HTML report Environment table."""
    meta = config.stash.setdefault(metadata_key, {})
    meta["Storage backends"] = "memory, sqlite (:memory:)"
    meta["Issuance program"] = IssuanceConfig().program_id
    meta["Partner"] = TEST_PARTNER_ID


def make_test_config(**overrides) -> AppConfig:
    """Build an AppConfig suitable for testing."""
    defaults = dict(
        log_level="debug",
        storage_backend=StorageBackend.MEMORY,
        db_path=":memory:",
        auth=AuthConfig(partner_id=TEST_PARTNER_ID),
        issuance=IssuanceConfig(api_url=TEST_ISSUANCE_URL, timeout=5),
    )
    defaults.update(overrides)
    return AppConfig(**defaults)


@pytest.fixture
def test_config():
    """Default AppConfig for tests."""
    return make_test_config()


@pytest.fixture(params=["memory", "sqlite"])
async def store(request):
    """Initialized store, once per backend."""
    if request.param == "memory":
        s = MemoryEntityStore()
    else:
        s = SQLiteEntityStore(":memory:")
    await s.initialize()
    yield s
    await s.close()


@pytest.fixture(scope="session")
def rsa_keys() -> tuple[str, str]:
    """(private PKCS#8 PEM, public PEM) generated once per session."""
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()
    public_pem = key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode()
    return private_pem, public_pem


@pytest.fixture
def workflow(store):
    return PurchaseWorkflow(store)


@pytest.fixture
def recorder(store):
    return CredentialRecorder(store)


@pytest.fixture
def mock_token_issuer():
    return MockTokenIssuer()


@pytest.fixture
def mock_credential_issuer():
    return MockCredentialIssuer(succeed=True)


@pytest.fixture
def coordinator(store, workflow, mock_token_issuer, mock_credential_issuer):
    return IssuanceCoordinator(
        store=store,
        workflow=workflow,
        token_issuer=mock_token_issuer,
        credential_issuer=mock_credential_issuer,
        partner_id=TEST_PARTNER_ID,
    )


@pytest.fixture
def service(store, workflow, recorder, mock_token_issuer, coordinator):
    """Fully wired TicketingService with mocked external issuers."""
    return TicketingService(
        store=store,
        workflow=workflow,
        recorder=recorder,
        token_issuer=mock_token_issuer,
        issuance=coordinator,
        partner_id=TEST_PARTNER_ID,
    )
