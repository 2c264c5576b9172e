import logging

import pytest

from conftest import FakeStore, add_user
from models.users import ProfileStore
from utils.errors import InvalidSetting, NotFound, PersistenceFailed, TokenAlreadyIssued
from utils.privacy import normalize_privacy, read_privacy, save_privacy
from utils.tokens import active_tokens, generate_token, issue_token, revoke_token, token_candidates


@pytest.fixture
def profiles(store):
    add_user(store, "u1", "Ana Reyes", "ana@example.edu", student_id="2024-001")
    add_user(store, "u2", "Ben Cruz", "ben@example.edu", student_id="2024-002")
    return ProfileStore(store)


# -----------------------------
# Privacy
# -----------------------------
def test_privacy_defaults_to_only_me():
    assert read_privacy({}) == {"email": "only_me", "studentId": "only_me", "lastSeen": "only_me"}
    assert normalize_privacy({"email": "public", "lastSeen": ""}) == {
        "privacy_email": "public",
        "privacy_student_id": "only_me",
        "privacy_last_seen": "only_me",
    }


def test_privacy_rejects_unknown_levels():
    with pytest.raises(InvalidSetting):
        normalize_privacy({"email": "everyone"})


def test_save_privacy_writes_primary_and_mirror(store, profiles):
    mirror = FakeStore()

    saved = save_privacy(profiles, "u1", {"email": "friends"}, mirror=mirror)

    assert saved == {"email": "friends", "studentId": "only_me", "lastSeen": "only_me"}
    assert store.collections["users"]["u1"]["privacy_email"] == "friends"
    assert store.collections["users"]["u1"]["full_name"] == "Ana Reyes"
    assert mirror.collections["profiles"]["u1"]["privacy_email"] == "friends"


def test_mirror_failure_is_logged_not_raised(store, profiles, caplog):
    mirror = FakeStore()
    mirror.fail_writes = True

    with caplog.at_level(logging.WARNING, logger="utils.privacy"):
        saved = save_privacy(profiles, "u1", {"lastSeen": "public"}, mirror=mirror)

    assert saved["lastSeen"] == "public"
    assert store.collections["users"]["u1"]["privacy_last_seen"] == "public"
    assert "Mirror sync warning" in caplog.text


def test_primary_failure_is_raised_and_mirror_untouched(store, profiles):
    mirror = FakeStore()
    store.fail_writes = True

    with pytest.raises(PersistenceFailed):
        save_privacy(profiles, "u1", {"email": "public"}, mirror=mirror)
    assert mirror.collections["profiles"] == {}


# -----------------------------
# Bypass tokens
# -----------------------------
def test_generated_tokens_look_like_admin_tokens():
    token = generate_token()
    assert token.startswith("sk_live_")
    assert len(token) == len("sk_live_") + 32
    assert token[8:].isalnum()
    assert generate_token() != token


def test_issue_and_revoke_token(store, profiles):
    token = issue_token(profiles, "u1")

    assert store.collections["users"]["u1"]["special_password_token"] == token
    assert [p["id"] for p in active_tokens(profiles)] == ["u1"]

    revoke_token(profiles, "u1")

    assert "special_password_token" not in store.collections["users"]["u1"]
    assert active_tokens(profiles) == []


def test_one_outstanding_token_per_user(store, profiles):
    first = issue_token(profiles, "u1")
    with pytest.raises(TokenAlreadyIssued):
        issue_token(profiles, "u1")
    assert store.collections["users"]["u1"]["special_password_token"] == first


def test_token_for_unknown_user(profiles):
    with pytest.raises(NotFound):
        issue_token(profiles, "ghost")
    with pytest.raises(NotFound):
        revoke_token(profiles, "ghost")


def test_candidates_exclude_token_holders(profiles):
    issue_token(profiles, "u1")
    assert [p["id"] for p in token_candidates(profiles)] == ["u2"]
    assert [p["id"] for p in token_candidates(profiles, "2024-002")] == ["u2"]
    assert token_candidates(profiles, "ana") == []
