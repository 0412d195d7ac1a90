"""CLI commands end to end against a temporary SQLite database."""

from __future__ import annotations

import json

import pytest
from click.testing import CliRunner

from fanpass.cli import cli

from tests.conftest import TEST_PARTNER_ID


@pytest.fixture
def env(tmp_path, monkeypatch):
    for name in ("FANPASS_PRIVATE_KEY", "FANPASS_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    return {
        "FANPASS_STORAGE": "sqlite",
        "FANPASS_DB_PATH": str(tmp_path / "fanpass.db"),
        "FANPASS_PARTNER_ID": TEST_PARTNER_ID,
        # Nothing listens here; issuance attempts fail fast
        "FANPASS_ISSUANCE_URL": "http://127.0.0.1:9",
    }


@pytest.fixture
def invoke(env):
    runner = CliRunner()

    def _invoke(*args, extra_env: dict | None = None):
        return runner.invoke(cli, list(args), env={**env, **(extra_env or {})})

    return _invoke


def _ok(result):
    assert result.exit_code == 0, result.output
    return json.loads(result.stdout)


def _create_event(invoke, max_tickets: int = 2) -> dict:
    return _ok(invoke(
        "events", "create",
        "--title", "Midnight Echoes Live",
        "--artist", "Luna Vale",
        "--venue", "The Roundhouse, London",
        "--date", "2025-11-14T20:00:00Z",
        "--price", "150",
        "--max-tickets", str(max_tickets),
    ))


# ── Info ──────────────────────────────────────────────────────────


def test_status(invoke, env):
    result = invoke("status")
    assert result.exit_code == 0
    assert "sqlite" in result.output
    assert env["FANPASS_DB_PATH"] in result.output
    assert "(not set)" in result.output


# ── Full flow ─────────────────────────────────────────────────────


def test_purchase_and_redeem_flow(invoke):
    user = _ok(invoke("connect", "0xCLI", "--moca-id", "did:test:cli"))["user"]
    event = _create_event(invoke)
    assert event["sold_tickets"] == 0

    purchase = _ok(invoke("purchase", event["id"], user["id"], "did:test:cli"))
    ticket = purchase["ticket"]
    assert purchase["credentialSubject"]["maxResalePrice"] == "165"
    assert purchase["credentialSubject"]["originalBuyer"] == "did:test:cli"

    shown = _ok(invoke("events", "show", event["id"]))
    assert shown["sold_tickets"] == 1

    redeemed = _ok(invoke("redeem", ticket["id"]))
    assert redeemed["is_used"] is True

    again = invoke("redeem", ticket["id"])
    assert again.exit_code == 1
    assert "Error [already_redeemed]" in again.output

    owned = _ok(invoke("tickets", "user", user["id"]))
    assert [t["id"] for t in owned] == [ticket["id"]]
    by_event = _ok(invoke("tickets", "event", event["id"]))
    assert len(by_event) == 1


def test_sold_out(invoke):
    user = _ok(invoke("connect", "0xSOLD"))["user"]
    event = _create_event(invoke, max_tickets=1)
    _ok(invoke("purchase", event["id"], user["id"], "did:test:x"))

    result = invoke("purchase", event["id"], user["id"], "did:test:x")
    assert result.exit_code == 1
    assert "Error [sold_out]: Event is sold out" in result.output


def test_events_list_and_update(invoke):
    event = _create_event(invoke)
    updated = _ok(invoke("events", "update", event["id"], "--venue", "O2 Academy", "--price", "175"))
    assert updated["venue"] == "O2 Academy"
    assert updated["ticket_price"] == 175

    listed = _ok(invoke("events", "list"))
    assert [e["id"] for e in listed] == [event["id"]]


def test_user_lookup(invoke):
    user = _ok(invoke("connect", "0xWHO"))["user"]
    assert _ok(invoke("user", user["id"]))["wallet_address"] == "0xWHO"
    assert _ok(invoke("user", "--wallet", "0xWHO"))["id"] == user["id"]


def test_credentials_commands(invoke):
    user = _ok(invoke("connect", "0xFAN"))["user"]
    credential = _ok(invoke("credentials", "record", user["id"], "Luna Vale", "early_supporter"))
    assert credential["credential_type"] == "early_supporter"

    assert _ok(invoke("credentials", "verify", user["id"], "Luna Vale", "early_supporter")) == {"verified": True}
    assert _ok(invoke("credentials", "verify", user["id"], "Luna Vale", "vip")) == {"verified": False}
    assert len(_ok(invoke("credentials", "list", user["id"]))) == 1
    assert _ok(invoke("user", user["id"]))["reputation_score"] == 100


# ── Errors ────────────────────────────────────────────────────────


def test_not_found(invoke):
    result = invoke("events", "show", "missing")
    assert result.exit_code == 1
    assert "Error [not_found]: Event not found" in result.output


def test_validation_error(invoke):
    result = invoke(
        "events", "create",
        "--title", "Bad", "--artist", "A", "--venue", "V",
        "--date", "2025-11-14T20:00:00Z", "--price", "10", "--max-tickets", "0",
    )
    assert result.exit_code == 1
    assert "Error [validation_error]" in result.output


def test_bad_log_level(invoke):
    result = invoke("status", extra_env={"FANPASS_LOG_LEVEL": "loud"})
    assert result.exit_code == 1
    assert "Error [configuration_error]: Unknown log level: loud" in result.output


def test_token_without_key(invoke):
    result = invoke("token")
    assert result.exit_code == 1
    assert "Error [configuration_error]" in result.output


def test_token_with_key(invoke, rsa_keys):
    data = _ok(invoke("token", extra_env={"FANPASS_PRIVATE_KEY": rsa_keys[0]}))
    assert data["token"].count(".") == 2


def test_issue_failure_is_recorded(invoke, rsa_keys):
    """Unreachable issuer → upstream error, ticket kept as failed."""
    key_env = {"FANPASS_PRIVATE_KEY": rsa_keys[0]}
    user = _ok(invoke("connect", "0xISSUE"))["user"]
    event = _create_event(invoke)
    ticket = _ok(invoke("purchase", event["id"], user["id"], "did:test:issue"))["ticket"]

    result = invoke("issue", ticket["id"], extra_env=key_env)
    assert result.exit_code == 1
    assert "Error [upstream_failure]" in result.output

    owned = _ok(invoke("tickets", "user", user["id"]))
    assert owned[0]["issuance_status"] == "failed"
    assert owned[0]["issuance_error"]
