import time

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from conftest import TENANT_ID
from main import app
from utils.auth_utils import get_user_identifier, get_user_groups


def _token(secret="test-secret", **claims):
    payload = {"sub": "u-9", "email": "admin@clinic.test", "groups": ["admin"], "exp": int(time.time()) + 300}
    payload.update(claims)
    return jwt.encode(payload, secret, algorithm="HS256")


@pytest.fixture
def raw_client():
    """Client that goes through the real bearer token check."""
    with TestClient(app, headers={"X-Tenant-ID": TENANT_ID}) as test_client:
        yield test_client


def test_valid_token_is_accepted(raw_client):
    response = raw_client.post(
        "/medicines/",
        json={"name": "Loratadine", "sku": "LOR-10", "unit": "tablet"},
        headers={"Authorization": f"Bearer {_token()}"},
    )

    assert response.status_code == 201
    assert response.json()["created_by"] == "admin@clinic.test"


def test_missing_header_is_unauthorized(raw_client):
    response = raw_client.get("/medicines/")

    assert response.status_code == 401
    assert response.json()["detail"] == "Authorization header is missing"


def test_malformed_header_is_unauthorized(raw_client):
    response = raw_client.get("/medicines/", headers={"Authorization": "Token abc"})

    assert response.status_code == 401


def test_token_signed_with_another_key_is_rejected(raw_client):
    response = raw_client.get("/medicines/", headers={"Authorization": f"Bearer {_token(secret='other')}"})

    assert response.status_code == 401


def test_expired_token_is_rejected(raw_client):
    token = _token(exp=int(time.time()) - 10)

    response = raw_client.get("/medicines/", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401
    assert response.json()["detail"] == "Token has expired"


def test_user_identifier_prefers_email_then_username_then_sub():
    assert get_user_identifier({"sub": "u-1", "username": "lan", "email": "lan@clinic.test"}) == "lan@clinic.test"
    assert get_user_identifier({"sub": "u-1", "username": "lan"}) == "lan"
    assert get_user_identifier({"sub": "u-1"}) == "u-1"
    assert get_user_identifier({}) == "unknown"


def test_single_group_claim_is_treated_as_a_list():
    assert get_user_groups({"groups": "pharmacist"}) == ["pharmacist"]
    assert get_user_groups({}) == []
