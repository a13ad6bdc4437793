"""Shared fixtures: in-memory SQLite, a TestClient per test, payload factory."""

import os

# must be set before interaction_api is imported; settings are read at import time
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.pop("PUBLIC_BASE_URL", None)
os.environ["FATAL_ON_ASYNC_ERROR"] = "false"

import copy  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from interaction_api.db.base import create_all, drop_all  # noqa: E402
from interaction_api.db.session import SessionLocal, engine  # noqa: E402
from interaction_api.main import app  # noqa: E402

BASE = "/api/partyInteraction"

_PAYLOAD = {
    "interactionDate": {"startDateTime": "2024-01-01T10:00:00Z"},
    "description": "Customer called about a billing discrepancy",
    "reason": "Billing",
    "direction": "inbound",
    "relatedParty": [
        {
            "role": "customer",
            "partyOrPartyRole": {"id": "cust-1", "name": "Ada Lovelace", "referredType": "Individual"},
        },
        {
            "role": "agent",
            "partyOrPartyRole": {"id": "agent-7", "name": "Grace Hopper", "referredType": "Individual"},
        },
    ],
    "relatedChannel": [{"role": "contact", "channel": {"id": "ch-1", "name": "phone"}}],
}


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c
    drop_all(engine)


@pytest.fixture
def db():
    create_all(engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        drop_all(engine)


@pytest.fixture
def make_payload():
    def _make(**overrides):
        payload = copy.deepcopy(_PAYLOAD)
        payload.update(overrides)
        return payload
    return _make


@pytest.fixture
def create(client, make_payload):
    """POST a record and return its JSON body."""
    def _create(**overrides):
        resp = client.post(BASE, json=make_payload(**overrides))
        assert resp.status_code == 201, resp.text
        return resp.json()
    return _create
