"""Signed bearer tokens for access and refresh flows."""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Any

import jwt

from taskboard_api.core.errors import AuthenticationFailure
from taskboard_api.settings import Settings


class TokenType(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"


@dataclass(frozen=True, slots=True)
class TokenClaims:
    """Validated token payload: who the bearer is and until when."""

    user_id: int
    expires_at: datetime
    token_type: TokenType


class TokenIssuer:
    """Issue and verify HMAC-signed JWTs.

    Tokens carry only the user identifier, an expiry and the token type; roles
    are always resolved from the store. ``verify`` fails closed: any decoding,
    signature, expiry or shape problem raises :class:`AuthenticationFailure`.
    """

    def __init__(
        self,
        *,
        secret: str,
        algorithm: str = "HS256",
        access_ttl: timedelta = timedelta(days=1),
        refresh_ttl: timedelta = timedelta(days=7),
    ) -> None:
        self._secret = secret
        self._algorithm = algorithm
        self._ttls = {TokenType.ACCESS: access_ttl, TokenType.REFRESH: refresh_ttl}

    @classmethod
    def from_settings(cls, settings: Settings) -> TokenIssuer:
        return cls(
            secret=settings.jwt_secret_value,
            algorithm=settings.jwt_algorithm,
            access_ttl=settings.jwt_access_ttl,
            refresh_ttl=settings.jwt_refresh_ttl,
        )

    def issue(self, user_id: int, token_type: TokenType = TokenType.ACCESS) -> str:
        issued_at = datetime.now(UTC)
        payload: dict[str, Any] = {
            "sub": str(user_id),
            "typ": token_type.value,
            "iat": int(issued_at.timestamp()),
            "exp": int((issued_at + self._ttls[token_type]).timestamp()),
            # Unique per issuance so two refresh tokens minted in the same
            # second never collide in the revocation table.
            "jti": secrets.token_hex(8),
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def issue_access(self, user_id: int) -> str:
        return self.issue(user_id, TokenType.ACCESS)

    def issue_refresh(self, user_id: int) -> str:
        return self.issue(user_id, TokenType.REFRESH)

    def verify(self, token: str | None, expected_type: TokenType = TokenType.ACCESS) -> TokenClaims:
        if not token:
            raise AuthenticationFailure("Missing token")
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": ["sub", "exp", "typ"]},
            )
        except jwt.ExpiredSignatureError as exc:
            raise AuthenticationFailure("Token expired") from exc
        except jwt.PyJWTError as exc:
            raise AuthenticationFailure("Invalid token") from exc

        try:
            user_id = int(payload["sub"])
            token_type = TokenType(payload["typ"])
            expires_at = datetime.fromtimestamp(int(payload["exp"]), tz=UTC)
        except (TypeError, ValueError) as exc:
            raise AuthenticationFailure("Invalid token") from exc

        if token_type is not expected_type:
            raise AuthenticationFailure("Invalid token type")
        return TokenClaims(user_id=user_id, expires_at=expires_at, token_type=token_type)


__all__ = ["TokenClaims", "TokenIssuer", "TokenType"]
