"""
Unit tests for configuration helpers, domain models and token handling.
"""

from datetime import timedelta

import pytest

from medical_service.api.auth import generate_token, verify_token
from medical_service.config import get_env
from medical_service.models import Actor, Role, normalize_id


# ── Tests: get_env ───────────────────────────────────────────────────

def test_get_env_ok(monkeypatch):
    monkeypatch.setenv("X", "123")
    assert get_env("X") == "123"


def test_get_env_missing_exits(monkeypatch, capsys):
    monkeypatch.delenv("MISSING_ENV", raising=False)
    with pytest.raises(SystemExit) as e:
        get_env("MISSING_ENV")
    assert e.value.code == 1
    err = capsys.readouterr().err
    assert "ERROR: env var MISSING_ENV is not set" in err


# ── Tests: models ────────────────────────────────────────────────────

@pytest.mark.parametrize("raw, expected", [
    ("player", Role.PLAYER),
    (" Team-Admin ", Role.TEAM_ADMIN),
    (Role.ADMIN, Role.ADMIN),
    ("physio", None),
    (None, None),
])
def test_role_parse(raw, expected):
    assert Role.parse(raw) is expected


def test_normalize_id():
    assert normalize_id(42) == "42"
    assert normalize_id("  abc ") == "abc"
    assert normalize_id("") is None
    assert normalize_id(None) is None


def test_actor_from_claims_prefers_user_id():
    a = Actor.from_claims({"userId": 42, "sub": "other", "role": "Coach", "teamId": 5})
    assert a == Actor(identity="42", role="coach", team="5")


def test_actor_from_claims_fallbacks():
    a = Actor.from_claims({"sub": "u-1", "role": "medical", "team": "t-9"})
    assert a.identity == "u-1"
    assert a.team == "t-9"


def test_actor_from_claims_without_identity():
    assert Actor.from_claims({"role": "admin"}).identity is None


# ── Tests: tokens ────────────────────────────────────────────────────

def test_token_round_trip_claims():
    payload = verify_token(generate_token("42", "player", "5"))
    assert payload["userId"] == "42"
    assert payload["role"] == "player"
    assert payload["teamId"] == "5"


def test_expired_token_rejected():
    token = generate_token("42", "player", expires_in=timedelta(seconds=-1))
    assert verify_token(token) is None


def test_tampered_token_rejected():
    token = generate_token("42", "player")
    assert verify_token(token[:-2] + ("aa" if not token.endswith("aa") else "bb")) is None
