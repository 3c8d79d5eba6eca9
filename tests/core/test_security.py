from __future__ import annotations

from datetime import timedelta

import jwt
import pytest

from taskboard_api.core.errors import AuthenticationFailure
from taskboard_api.core.security import TokenIssuer, TokenType, hash_password, verify_password

SECRET = "unit-test-secret-0123456789abcdef"


@pytest.fixture()
def issuer() -> TokenIssuer:
    return TokenIssuer(secret=SECRET)


def test_access_token_round_trip(issuer: TokenIssuer) -> None:
    claims = issuer.verify(issuer.issue_access(42))

    assert claims.user_id == 42
    assert claims.token_type is TokenType.ACCESS


def test_refresh_tokens_are_unique(issuer: TokenIssuer) -> None:
    assert issuer.issue_refresh(1) != issuer.issue_refresh(1)


def test_token_type_must_match(issuer: TokenIssuer) -> None:
    refresh = issuer.issue_refresh(7)

    with pytest.raises(AuthenticationFailure, match="Invalid token type"):
        issuer.verify(refresh)
    assert issuer.verify(refresh, TokenType.REFRESH).user_id == 7


def test_expired_token_is_rejected() -> None:
    issuer = TokenIssuer(secret=SECRET, access_ttl=timedelta(seconds=-1))

    with pytest.raises(AuthenticationFailure, match="Token expired"):
        issuer.verify(issuer.issue_access(1))


def test_foreign_signature_is_rejected(issuer: TokenIssuer) -> None:
    forged = TokenIssuer(secret="another-secret-0123456789abcdef").issue_access(1)

    with pytest.raises(AuthenticationFailure, match="Invalid token"):
        issuer.verify(forged)


@pytest.mark.parametrize("token", [None, "", "not-a-jwt"])
def test_malformed_tokens_fail_closed(issuer: TokenIssuer, token: str | None) -> None:
    with pytest.raises(AuthenticationFailure):
        issuer.verify(token)


def test_token_with_non_numeric_subject_is_rejected(issuer: TokenIssuer) -> None:
    token = jwt.encode({"sub": "alice", "typ": "access", "exp": 4102444800}, SECRET, algorithm="HS256")

    with pytest.raises(AuthenticationFailure, match="Invalid token"):
        issuer.verify(token)


def test_password_hash_round_trip() -> None:
    hashed = hash_password("s3cret!")

    assert hashed != "s3cret!"
    assert verify_password("s3cret!", hashed)
    assert not verify_password("wrong", hashed)


def test_verify_password_rejects_garbage_hash() -> None:
    assert not verify_password("anything", "not-a-hash")
