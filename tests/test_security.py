# tests/test_security.py
from datetime import datetime, timedelta

from freightflow_auth.security import PasswordHasher, ResetTokenIssuer


def test_hash_is_salted_but_verifies(hasher):
    first = hasher.hash("pw1")
    second = hasher.hash("pw1")
    assert first != second
    assert "pw1" not in first
    assert hasher.verify("pw1", first)
    assert hasher.verify("pw1", second)


def test_verify_rejects_wrong_password(hasher):
    assert not hasher.verify("wrong", hasher.hash("pw1"))


def test_verify_returns_false_for_malformed_hash(hasher):
    assert hasher.verify("pw1", "not-a-bcrypt-hash") is False
    assert hasher.verify("pw1", "") is False
    assert hasher.verify("pw1", None) is False
    assert hasher.verify(None, hasher.hash("pw1")) is False


def test_default_rounds():
    hashed = PasswordHasher().hash("pw1")
    assert hashed.startswith("$2b$10$")


def test_issue_token_shape_and_expiry(clock):
    issuer = ResetTokenIssuer(clock=clock)
    token, expires_at = issuer.issue()

    assert len(token) == 64
    int(token, 16)  # hex encoded
    assert expires_at == clock.now + timedelta(minutes=10)


def test_tokens_are_unique(clock):
    issuer = ResetTokenIssuer(clock=clock)
    tokens = {issuer.issue()[0] for _ in range(50)}
    assert len(tokens) == 50


def test_custom_ttl():
    now = datetime(2025, 6, 1)
    issuer = ResetTokenIssuer(expire_minutes=30, clock=lambda: now)
    assert issuer.issue()[1] == now + timedelta(minutes=30)
