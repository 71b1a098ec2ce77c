"""JWT authentication: resolve the caller's Identity from a bearer token.

- No Authorization header / empty token -> MissingCredentialError (401)
- Malformed, expired, bad signature, missing claims -> InvalidCredentialError (401)
- Valid token -> Identity(user_id, email)

Uses PyJWT (HS256). Secret must come from environment, never hardcoded.
"""

from __future__ import annotations

import time

import jwt

from src.shared.errors import InvalidCredentialError, MissingCredentialError
from src.shared.types import Identity

_ALGORITHM = "HS256"
_BEARER = "bearer"

# Tokens issued at login are valid for 7 days.
DEFAULT_TOKEN_TTL_SECONDS = 7 * 24 * 3600


def encode_token(
    *,
    user_id: str,
    email: str,
    secret: str,
    ttl_seconds: int = DEFAULT_TOKEN_TTL_SECONDS,
) -> str:
    """Create a signed JWT carrying user_id and email."""
    now = int(time.time())
    payload = {
        "sub": user_id,
        "email": email,
        "iat": now,
        "exp": now + ttl_seconds,
    }
    return jwt.encode(payload, secret, algorithm=_ALGORITHM)


def decode_token(token: str, *, secret: str) -> Identity:
    """Decode and validate a JWT. Raises InvalidCredentialError on failure.

    The user id is read from ``sub``; ``userId`` is accepted for tokens
    minted by the legacy backend.
    """
    try:
        data = jwt.decode(
            token,
            secret,
            algorithms=[_ALGORITHM],
            options={"require": ["exp"]},
        )
    except jwt.ExpiredSignatureError as exc:
        raise InvalidCredentialError("Token expired") from exc
    except jwt.InvalidTokenError as exc:
        raise InvalidCredentialError(f"Invalid token: {exc}") from exc

    user_id = data.get("sub") or data.get("userId")
    email = data.get("email")
    if not isinstance(user_id, str) or not user_id:
        raise InvalidCredentialError("Invalid token: missing subject")
    if not isinstance(email, str):
        raise InvalidCredentialError("Invalid token: missing email")
    return Identity(user_id=user_id, email=email)


def extract_bearer(authorization: str | None) -> str | None:
    """Pull the token out of an Authorization header value.

    Returns None when no credential was supplied at all.

    Raises:
        InvalidCredentialError: Header present but not a Bearer credential.
    """
    if authorization is None or not authorization.strip():
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != _BEARER:
        raise InvalidCredentialError("Malformed Authorization header")
    return token.strip() or None


class JWTAuthMiddleware:
    """Synchronous JWT auth check for gateway requests.

    Exempt paths (healthz, docs, metrics) skip authentication entirely.
    """

    def __init__(
        self,
        *,
        secret: str,
        exempt_paths: list[str] | None = None,
    ) -> None:
        self._secret = secret
        self._exempt_paths = set(exempt_paths or [])

    def authenticate(self, *, authorization: str | None, path: str) -> Identity | None:
        """Authenticate request. Returns None for exempt paths.

        Raises MissingCredentialError / InvalidCredentialError on
        non-exempt paths.
        """
        if path in self._exempt_paths:
            return None

        token = extract_bearer(authorization)
        if not token:
            raise MissingCredentialError()

        return decode_token(token, secret=self._secret)
