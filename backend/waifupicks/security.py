"""
WaifuPicks Backend — Bearer Token Issuance and Verification
=============================================================

What:  Issues short-lived HS256 tokens and guards routes with a bearer check.
How:   PyJWT signs and verifies tokens with TOKEN_SECRET. `require_token` is
       a FastAPI dependency evaluated once per request, before the handler
       runs; the ledger never sees the claims.
When:  Only when TOKEN_SECRET is configured. Without a secret, `GET /`
       answers plaintext "OK" and `require_token` lets every request through.

Status codes:
    no Authorization header     → 401 (AuthenticationError)
    bad signature / expired     → 403 (ForbiddenError)
"""

import logging
import time
from typing import Any, Dict, Optional

import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from waifupicks.config import Settings, settings
from waifupicks.exceptions import AuthenticationError, ForbiddenError

logger = logging.getLogger(__name__)

TOKEN_SUBJECT = "waifupicks-client"

# auto_error=False: a missing header must become our 401, not FastAPI's 403
bearer_scheme = HTTPBearer(auto_error=False)


def create_access_token(
    config: Settings = settings,
    claims: Optional[Dict[str, Any]] = None,
    now: Optional[int] = None,
) -> str:
    """
    Sign a token valid for `config.token_expire_seconds`.

    Args:
        config: Settings carrying the secret, algorithm, and lifetime
        claims: Extra claims merged over the defaults
        now: Issue time as a UNIX timestamp (defaults to the current time)
    """
    issued_at = int(time.time()) if now is None else now
    payload: Dict[str, Any] = {
        "sub": TOKEN_SUBJECT,
        "iat": issued_at,
        "exp": issued_at + config.token_expire_seconds,
    }
    if claims:
        payload.update(claims)
    return jwt.encode(payload, config.token_secret, algorithm=config.token_algorithm)


def decode_access_token(token: str, config: Settings = settings) -> Dict[str, Any]:
    """
    Verify signature and expiry.

    Raises:
        ForbiddenError: Token is malformed, badly signed, or expired
    """
    try:
        return jwt.decode(token, config.token_secret, algorithms=[config.token_algorithm])
    except jwt.ExpiredSignatureError:
        raise ForbiddenError(message="Token has expired")
    except jwt.InvalidTokenError as e:
        logger.debug("Rejected bearer token: %s", str(e))
        raise ForbiddenError()


async def require_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[Dict[str, Any]]:
    """
    FastAPI dependency guarding vote endpoints.

    Returns the decoded claims (also stored on `request.state.token_claims`),
    or None when token checks are disabled.
    """
    if not settings.auth_enabled:
        return None

    if credentials is None:
        raise AuthenticationError()

    claims = decode_access_token(credentials.credentials)
    request.state.token_claims = claims
    return claims
