# tests/unit/test_token_issuer.py

import pytest
from jose import jwt

from app.core.security import (
    InvalidTokenError,
    TokenIssuer,
    get_password_hash,
    looks_like_jwt,
    verify_password,
)

SECRET = "unit-test-secret"


def test_issue_and_verify_round_trip():
    issuer = TokenIssuer(SECRET)

    token = issuer.issue("alice", "CUSTOMER", session_id="abc123")
    claims = issuer.verify(token)

    assert claims.username == "alice"
    assert claims.role == "CUSTOMER"
    assert claims.session_id == "abc123"


def test_token_claims_shape():
    issuer = TokenIssuer(SECRET, expires_in_seconds=600)

    payload = jwt.decode(issuer.issue("alice", "ADMIN"), SECRET, algorithms=["HS256"])

    assert payload["sub"] == "alice"
    assert payload["role"] == "ADMIN"
    assert payload["type"] == "access"
    assert payload["exp"] - payload["iat"] == 600
    assert "sid" not in payload


def test_tokens_are_unique_per_issue():
    issuer = TokenIssuer(SECRET)

    assert issuer.issue("alice", "CUSTOMER") != issuer.issue("alice", "CUSTOMER")


def test_wrong_secret_rejected():
    token = TokenIssuer(SECRET).issue("alice", "CUSTOMER")

    with pytest.raises(InvalidTokenError):
        TokenIssuer("another-secret").verify(token)


def test_expired_token_rejected():
    issuer = TokenIssuer(SECRET, expires_in_seconds=-10)

    with pytest.raises(InvalidTokenError):
        issuer.verify(issuer.issue("alice", "CUSTOMER"))


def test_wrong_token_type_rejected():
    token = jwt.encode({"sub": "alice", "type": "refresh"}, SECRET, algorithm="HS256")

    with pytest.raises(InvalidTokenError):
        TokenIssuer(SECRET).verify(token)


def test_garbage_rejected():
    with pytest.raises(InvalidTokenError):
        TokenIssuer(SECRET).verify("not.a.token")


def test_looks_like_jwt():
    assert looks_like_jwt(TokenIssuer(SECRET).issue("alice", "CUSTOMER"))
    assert not looks_like_jwt("5f2b8c0d9e1a4b7c8d9e0f1a2b3c4d5e")


def test_password_hash_round_trip():
    hashed = get_password_hash("correct horse")

    assert hashed != "correct horse"
    assert verify_password("correct horse", hashed)
    assert not verify_password("wrong horse", hashed)
    assert not verify_password("correct horse", "not-a-bcrypt-hash")
