"""
JWT token utilities.

Tokens are issued by the external identity service and verified here with
the shared secret. When `jwt_issuer` / `jwt_audience` are configured the
`iss` / `aud` claims must match. `create_access_token` mints tokens in the
same shape for local tooling and tests.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from jose import JWTError, jwt
from trackchain.app.core.config import settings

logger = logging.getLogger(__name__)

REQUIRED_CLAIMS = ("sub", "org_id", "role")


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT access token.

    Example payload:
        {
            "sub": "ops@acme-pharma.example",
            "org_id": "8f5d2c1e-...",
            "role": "MANUFACTURER",
            "exp": 1234567890
        }
    """
    to_encode = data.copy()
    now = datetime.now(timezone.utc)
    to_encode["iat"] = now
    to_encode["exp"] = now + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))
    if settings.jwt_issuer:
        to_encode.setdefault("iss", settings.jwt_issuer)
    if settings.jwt_audience:
        to_encode.setdefault("aud", settings.jwt_audience)

    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Verify a token and return its claims.

    Returns:
        The payload when signature, expiry, issuer and audience check out;
        None otherwise
    """
    try:
        return jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.algorithm],
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
            options={"verify_aud": settings.jwt_audience is not None, "leeway": settings.jwt_leeway_seconds},
        )
    except JWTError as e:
        logger.info("Rejected bearer token: %s", e)
        return None


def missing_claims(payload: Dict[str, Any]) -> list:
    """Names of required claims absent or empty in a decoded payload."""
    return [claim for claim in REQUIRED_CLAIMS if not payload.get(claim)]
