"""Credential recording, reputation scoring and verification."""

from __future__ import annotations

import json

import pytest

from fanpass.errors import ValidationError
from fanpass.workflow.reputation import reputation_delta

from tests.factories import make_insert_user


@pytest.mark.parametrize(
    "credential_type,points",
    [("early_supporter", 100), ("attendance", 50), ("vip", 25), ("superfan", 25)],
)
async def test_reputation_points_per_type(store, recorder, credential_type, points):
    user = await store.create_user(make_insert_user())

    await recorder.record_credential(
        {"user_id": user.id, "artist_name": "Luna Vale", "credential_type": credential_type}
    )

    after = await store.get_user(user.id)
    assert after.reputation_score == points
    assert after.verified_fan is True
    assert reputation_delta(credential_type) == points


async def test_reputation_accumulates(store, recorder):
    user = await store.create_user(make_insert_user())
    for credential_type in ("early_supporter", "attendance", "vip"):
        await recorder.record_credential(
            {"user_id": user.id, "artist_name": "Luna Vale", "credential_type": credential_type}
        )
    assert (await store.get_user(user.id)).reputation_score == 175


async def test_record_accepts_camel_case_payload(store, recorder):
    """Wire payloads from web clients pass through unchanged."""
    user = await store.create_user(make_insert_user())
    credential = await recorder.record_credential(
        {
            "userId": user.id,
            "artistName": "Luna Vale",
            "credentialType": "attendance",
            "credentialData": {"venue": "The Roundhouse", "seat": "GA"},
        }
    )
    assert credential.user_id == user.id
    assert json.loads(credential.credential_data) == {"venue": "The Roundhouse", "seat": "GA"}


async def test_record_for_unknown_user_keeps_credential(store, recorder):
    """Reputation is best-effort: the credential is still stored."""
    credential = await recorder.record_credential(
        {"user_id": "ghost", "artist_name": "Luna Vale", "credential_type": "attendance"}
    )
    assert await store.get_fan_credential(credential.id) == credential
    assert await store.get_user("ghost") is None


async def test_record_rejects_invalid_input(store, recorder):
    user = await store.create_user(make_insert_user())
    with pytest.raises(ValidationError) as exc_info:
        await recorder.record_credential({"user_id": user.id, "artist_name": "Luna Vale"})
    assert exc_info.value.message == "Invalid InsertFanCredential data"
    assert await store.get_credentials_by_user(user.id) == []
    assert (await store.get_user(user.id)).reputation_score == 0


async def test_verify_credential_exact_match(store, recorder):
    user = await store.create_user(make_insert_user())
    await recorder.record_credential(
        {"user_id": user.id, "artist_name": "Luna Vale", "credential_type": "attendance"}
    )

    assert await recorder.verify_credential(user.id, "Luna Vale", "attendance") is True
    assert await recorder.verify_credential(user.id, "Luna Vale", "vip") is False
    assert await recorder.verify_credential(user.id, "luna vale", "attendance") is False
    assert await recorder.verify_credential("someone-else", "Luna Vale", "attendance") is False


async def test_verify_credential_strips_like_record(store, recorder):
    """Padding stripped on record is stripped on verify too."""
    user = await store.create_user(make_insert_user())
    credential = await recorder.record_credential(
        {"user_id": user.id, "artist_name": " Luna Vale ", "credential_type": " attendance"}
    )
    assert credential.artist_name == "Luna Vale"

    assert await recorder.verify_credential(user.id, " Luna Vale ", " attendance") is True
    assert await recorder.verify_credential(f" {user.id} ", "Luna Vale", "attendance") is True


@pytest.mark.parametrize(
    "user_id,artist,ctype",
    [("", "Luna Vale", "attendance"), ("u", "", "attendance"), ("u", "Luna Vale", ""), ("u", "   ", "vip")],
)
async def test_verify_credential_requires_fields(recorder, user_id, artist, ctype):
    with pytest.raises(ValidationError) as exc_info:
        await recorder.verify_credential(user_id, artist, ctype)
    assert exc_info.value.message == "Missing required fields"


async def test_credentials_for_user_newest_first(store, recorder):
    user = await store.create_user(make_insert_user())
    first = await recorder.record_credential(
        {"user_id": user.id, "artist_name": "Luna Vale", "credential_type": "attendance"}
    )
    second = await recorder.record_credential(
        {"user_id": user.id, "artist_name": "Orbit Kids", "credential_type": "vip"}
    )
    creds = await recorder.credentials_for_user(user.id)
    assert [c.id for c in creds] == [second.id, first.id]
