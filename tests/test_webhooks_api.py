"""Identity webhook tests: signature checks and user provisioning."""

import json
import time

import pytest
from sqlalchemy import select

from welth.auth import webhook
from welth.config import settings
from welth.db.models import User


def _signed_headers(body: bytes, msg_id: str = "msg_1", timestamp=None) -> dict:
    ts = str(int(timestamp if timestamp is not None else time.time()))
    return {
        "svix-id": msg_id,
        "svix-timestamp": ts,
        "svix-signature": webhook.sign(settings.identity_webhook_secret, msg_id, ts, body),
        "content-type": "application/json",
    }


def _user_event(event_type: str, **overrides) -> bytes:
    data = {
        "id": "user_2hook",
        "first_name": "Grace",
        "last_name": "Hopper",
        "image_url": "https://img.example.com/grace.png",
        "primary_email_address_id": "idn_1",
        "email_addresses": [
            {"id": "idn_0", "email_address": "old@example.com"},
            {"id": "idn_1", "email_address": "grace@example.com"},
        ],
    }
    data.update(overrides)
    return json.dumps({"type": event_type, "data": data}).encode()


async def _user(db_session, clerk_user_id="user_2hook"):
    result = await db_session.execute(
        select(User).where(User.clerk_user_id == clerk_user_id)
    )
    return result.scalars().first()


@pytest.mark.asyncio
async def test_webhook_user_created(client, db_session):
    body = _user_event("user.created")
    r = await client.post("/api/webhooks/identity", content=body, headers=_signed_headers(body))
    assert r.status_code == 200
    assert r.json()["status"] == "processed"

    user = await _user(db_session)
    assert user.email == "grace@example.com"
    assert user.name == "Grace Hopper"


@pytest.mark.asyncio
async def test_webhook_user_updated(client, db_session):
    body = _user_event("user.created")
    await client.post("/api/webhooks/identity", content=body, headers=_signed_headers(body))

    body = _user_event("user.updated", first_name="Rear Admiral Grace")
    r = await client.post(
        "/api/webhooks/identity", content=body, headers=_signed_headers(body, "msg_2")
    )
    assert r.status_code == 200
    user = await _user(db_session)
    await db_session.refresh(user)
    assert user.name == "Rear Admiral Grace Hopper"


@pytest.mark.asyncio
async def test_webhook_user_deleted(client, db_session):
    body = _user_event("user.created")
    await client.post("/api/webhooks/identity", content=body, headers=_signed_headers(body))

    body = json.dumps({"type": "user.deleted", "data": {"id": "user_2hook", "deleted": True}}).encode()
    r = await client.post(
        "/api/webhooks/identity", content=body, headers=_signed_headers(body, "msg_3")
    )
    assert r.status_code == 200
    db_session.expunge_all()
    assert await _user(db_session) is None


@pytest.mark.asyncio
async def test_webhook_email_owned_by_another_user(client, db_session):
    body = _user_event("user.created")
    await client.post("/api/webhooks/identity", content=body, headers=_signed_headers(body))

    body = _user_event("user.created", id="user_2other")
    r = await client.post(
        "/api/webhooks/identity", content=body, headers=_signed_headers(body, "msg_4")
    )
    assert r.status_code == 409
    assert r.json()["detail"] == "Email already registered"

    db_session.expunge_all()
    assert await _user(db_session, "user_2other") is None
    assert (await _user(db_session)).email == "grace@example.com"



@pytest.mark.asyncio
async def test_webhook_rejects_bad_signature(client, db_session):
    body = _user_event("user.created")
    headers = _signed_headers(body)
    headers["svix-signature"] = "v1,bm90LXRoZS1zaWduYXR1cmU="
    r = await client.post("/api/webhooks/identity", content=body, headers=headers)
    assert r.status_code == 401
    assert await _user(db_session) is None


@pytest.mark.asyncio
async def test_webhook_rejects_stale_timestamp(client):
    body = _user_event("user.created")
    headers = _signed_headers(body, timestamp=time.time() - 3600)
    r = await client.post("/api/webhooks/identity", content=body, headers=headers)
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_webhook_ignores_other_events(client):
    body = json.dumps({"type": "session.created", "data": {"id": "sess_1"}}).encode()
    r = await client.post("/api/webhooks/identity", content=body, headers=_signed_headers(body))
    assert r.status_code == 200
    assert r.json()["status"] == "ignored"


@pytest.mark.asyncio
async def test_webhook_user_without_email(client):
    body = _user_event("user.created", email_addresses=[], primary_email_address_id=None)
    r = await client.post("/api/webhooks/identity", content=body, headers=_signed_headers(body))
    assert r.status_code == 422
