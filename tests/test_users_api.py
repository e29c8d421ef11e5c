"""Privileged guard: role management and explicit session revocation."""

import pytest

from models import storage
from models.user import User


@pytest.fixture
def admin_client(app, signup):
    client = app.test_client()
    user_id = signup(client, email="admin@example.com").get_json()["user"]["id"]
    with app.app_context():
        user = storage.get(User, user_id)
        user.role = "admin"
        storage.save()
    return client


@pytest.fixture
def member(app, signup):
    client = app.test_client()
    user_id = signup(client, email="member@example.com").get_json()["user"]["id"]
    return client, user_id


def test_standard_user_is_forbidden(member):
    client, user_id = member
    resp = client.put(f"/api/users/{user_id}/role", json={"role": "admin"})
    assert resp.status_code == 403
    assert resp.get_json()["error"] == "FORBIDDEN"


def test_anonymous_is_unauthenticated_not_forbidden(app, member):
    _, user_id = member
    resp = app.test_client().put(f"/api/users/{user_id}/role", json={"role": "admin"})
    assert resp.status_code == 401


def test_admin_sets_role(admin_client, member):
    client, user_id = member
    resp = admin_client.put(f"/api/users/{user_id}/role", json={"role": "admin"})
    assert resp.status_code == 200
    assert resp.get_json()["data"]["role"] == "admin"

    # the promoted user now passes the privileged guard
    assert client.delete(f"/api/users/{user_id}/session").status_code == 204


def test_unknown_role_is_rejected(admin_client, member):
    _, user_id = member
    resp = admin_client.put(f"/api/users/{user_id}/role", json={"role": "owner"})
    assert resp.status_code == 422


def test_unknown_user(admin_client):
    resp = admin_client.put("/api/users/does-not-exist/role", json={"role": "user"})
    assert resp.status_code == 404


def test_admin_revokes_session(admin_client, member, store, clock):
    client, user_id = member
    assert store.get(user_id) is not None

    assert admin_client.delete(f"/api/users/{user_id}/session").status_code == 204
    assert store.get(user_id) is None

    # the access token still works until it expires, then silent refresh fails
    assert client.get("/api/auth/profile").status_code == 200
    clock.advance(minutes=16)
    assert client.get("/api/auth/profile").status_code == 401
