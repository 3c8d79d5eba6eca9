"""Security primitives: password hashing and bearer tokens."""

from .hashing import hash_password, verify_password
from .tokens import TokenClaims, TokenIssuer, TokenType

__all__ = ["TokenClaims", "TokenIssuer", "TokenType", "hash_password", "verify_password"]
