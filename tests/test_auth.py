"""Unit tests for auth/store.py and auth/tokens.py.

Covers:
- UserStore create / lookup / role validation / duplicate usernames
- Password hashing and constant-time authenticate_user()
- JWT round trip and rejection of tampered tokens
- Bootstrap admin seeding is idempotent
"""

import pytest
from sqlalchemy.exc import IntegrityError

from auth.models import ROLE_ADMIN, ROLE_ANALYST, User
from auth.store import UserStore
from auth.tokens import (
    authenticate_user,
    create_access_token,
    decode_access_token,
    hash_password,
    seed_admin,
    verify_password,
)


@pytest.fixture
def store():
    s = UserStore("sqlite:///:memory:")
    yield s
    s.close()


# ---------------------------------------------------------------------------
# UserStore
# ---------------------------------------------------------------------------


def test_create_and_lookup(store):
    uid = store.create_user(User(username="alice", role=ROLE_ANALYST, hashed_password=hash_password("pw")))

    by_name = store.get_by_username("alice")
    assert by_name.id == uid
    assert by_name.role == ROLE_ANALYST
    assert by_name.is_active is True
    assert by_name.created_at
    assert store.get_by_id(uid).username == "alice"
    assert store.has_users() is True


def test_unknown_role_is_rejected(store):
    with pytest.raises(ValueError):
        store.create_user(User(username="mallory", role="root"))


def test_duplicate_username_is_rejected(store):
    store.create_user(User(username="bob", role=ROLE_ANALYST))
    with pytest.raises(IntegrityError):
        store.create_user(User(username="bob", role=ROLE_ADMIN))


def test_missing_user(store):
    assert store.get_by_username("nobody") is None
    assert store.get_by_id(999) is None
    assert store.has_users() is False


def test_update_last_login(store):
    uid = store.create_user(User(username="carol", role=ROLE_ANALYST))
    assert store.get_by_id(uid).last_login is None
    store.update_last_login(uid)
    assert store.get_by_id(uid).last_login is not None


def test_list_users_sorted(store):
    for name in ("zed", "amy"):
        store.create_user(User(username=name, role=ROLE_ANALYST))
    assert [u.username for u in store.list_users()] == ["amy", "zed"]


# ---------------------------------------------------------------------------
# Passwords & login
# ---------------------------------------------------------------------------


def test_password_hash_round_trip():
    hashed = hash_password("correct horse")
    assert verify_password("correct horse", hashed)
    assert not verify_password("wrong", hashed)
    assert not verify_password("x", "not-a-bcrypt-hash")


def test_authenticate_user(store):
    store.create_user(User(username="dave", role=ROLE_ANALYST, hashed_password=hash_password("s3cret")))
    assert authenticate_user(store, "dave", "s3cret").username == "dave"
    assert authenticate_user(store, "dave", "nope") is None
    assert authenticate_user(store, "ghost", "s3cret") is None


def test_inactive_user_cannot_authenticate(store):
    store.create_user(User(username="erin", role=ROLE_ANALYST, hashed_password=hash_password("pw"), is_active=False))
    assert authenticate_user(store, "erin", "pw") is None


# ---------------------------------------------------------------------------
# JWT
# ---------------------------------------------------------------------------


def test_token_round_trip():
    payload = decode_access_token(create_access_token(7, "frank", ROLE_ADMIN, expire_seconds=60))
    assert payload["user_id"] == 7
    assert payload["sub"] == "frank"
    assert payload["role"] == ROLE_ADMIN


def test_tampered_token_is_rejected():
    token = create_access_token(7, "frank", ROLE_ADMIN, expire_seconds=60)
    assert decode_access_token(token[:-2] + ("AA" if not token.endswith("AA") else "BB")) is None
    assert decode_access_token("not-a-jwt") is None


# ---------------------------------------------------------------------------
# Bootstrap admin
# ---------------------------------------------------------------------------


def test_seed_admin_is_idempotent(store, settings):
    first = seed_admin(store, settings)
    second = seed_admin(store, settings)

    assert first.role == ROLE_ADMIN
    assert second.id == first.id
    assert len(store.list_users()) == 1
    assert authenticate_user(store, settings.admin_username, settings.admin_password) is not None


def test_seed_admin_without_password(store, settings):
    assert seed_admin(store, settings.model_copy(update={"admin_password": ""})) is None
    assert store.has_users() is False
