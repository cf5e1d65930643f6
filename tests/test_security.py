"""Password hashing and token issuing."""
from datetime import timedelta

import bcrypt
import jwt
import pytest

from app.exceptions import UnauthorizedError
from app.security import TokenIssuer, hash_password, verify_password

SECRET = "unit-test-signing-secret-32-bytes!!"


def test_hash_is_not_the_password_and_verifies():
    hashed = hash_password("secret123", rounds=4)
    assert hashed != "secret123"
    assert verify_password("secret123", hashed)
    assert not verify_password("wrong-password", hashed)


def test_verify_without_hash_fails():
    assert not verify_password("secret123", None)


def test_verify_without_hash_still_runs_bcrypt(monkeypatch):
    calls = []
    real_checkpw = bcrypt.checkpw

    def counting_checkpw(password, hashed):
        calls.append(password)
        return real_checkpw(password, hashed)

    monkeypatch.setattr(bcrypt, "checkpw", counting_checkpw)
    assert not verify_password("secret123", None)
    assert not verify_password("secret123", "")
    assert calls == [b"secret123", b"secret123"]


def test_issued_token_carries_identity():
    issuer = TokenIssuer(SECRET)
    payload = issuer.verify(issuer.issue("user-1", "a@example.com"))
    assert payload["sub"] == "user-1"
    assert payload["email"] == "a@example.com"
    assert payload["exp"] - payload["iat"] == 24 * 60 * 60


def test_expired_token_is_rejected():
    issuer = TokenIssuer(SECRET, expires=timedelta(seconds=-10))
    with pytest.raises(UnauthorizedError, match="expired"):
        issuer.verify(issuer.issue("user-1", "a@example.com"))


def test_token_signed_with_other_secret_is_rejected():
    token = TokenIssuer("another-secret-key-that-is-32-bytes!").issue("user-1", "a@example.com")
    with pytest.raises(UnauthorizedError):
        TokenIssuer(SECRET).verify(token)


def test_token_without_subject_is_rejected():
    token = jwt.encode({"email": "a@example.com"}, SECRET, algorithm="HS256")
    with pytest.raises(UnauthorizedError):
        TokenIssuer(SECRET).verify(token)


def test_garbage_token_is_rejected():
    with pytest.raises(UnauthorizedError):
        TokenIssuer(SECRET).verify("not.a.token")
