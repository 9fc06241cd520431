"""
Token Revocation System using Redis.

The identity service blacklists tokens (logout) and whole organizations
(suspension) in Redis; this service honours those lists on every request.
"""

import logging

from trackchain.app.core import redis_client as redis_module
from trackchain.app.core.config import settings

logger = logging.getLogger(__name__)

# Redis key prefix for blacklisted tokens
TOKEN_BLACKLIST_PREFIX = "blacklist:token:"
ORG_TOKENS_PREFIX = "org:tokens:"


async def revoke_token(token: str, org_id: str) -> bool:
    """
    Revoke a specific JWT token by adding it to the blacklist.

    Args:
        token: The JWT token string to revoke
        org_id: Organization that owns the token

    Returns:
        True if successfully revoked, False otherwise
    """
    try:
        ttl_seconds = settings.access_token_expire_minutes * 60
        key = f"{TOKEN_BLACKLIST_PREFIX}{token}"
        await redis_module.redis_client.set(key, org_id, ex=ttl_seconds)
        return True
    except Exception as e:
        logger.warning("Error revoking token for org %s: %s", org_id, e)
        return False


async def is_token_revoked(token: str) -> bool:
    """
    Check if a token has been revoked.

    Returns False when Redis is unreachable.
    """
    try:
        key = f"{TOKEN_BLACKLIST_PREFIX}{token}"
        exists = await redis_module.redis_client.exists(key)
        return exists > 0
    except Exception as e:
        logger.warning("Error checking token revocation: %s", e)
        return False


async def revoke_all_org_tokens(org_id: str) -> bool:
    """
    Revoke all active tokens for an organization (e.g. on suspension).
    """
    try:
        key = f"{ORG_TOKENS_PREFIX}{org_id}:revoked"
        ttl_seconds = settings.access_token_expire_minutes * 60
        await redis_module.redis_client.set(key, "1", ex=ttl_seconds)
        return True
    except Exception as e:
        logger.warning("Error revoking all tokens for org %s: %s", org_id, e)
        return False


async def are_org_tokens_revoked(org_id: str) -> bool:
    """Check if all tokens for an organization have been revoked."""
    try:
        key = f"{ORG_TOKENS_PREFIX}{org_id}:revoked"
        exists = await redis_module.redis_client.exists(key)
        return exists > 0
    except Exception as e:
        logger.warning("Error checking org token revocation for %s: %s", org_id, e)
        return False


async def clear_org_token_revocation(org_id: str) -> bool:
    """Lift an organization-wide revocation (e.g. when reinstating it)."""
    try:
        key = f"{ORG_TOKENS_PREFIX}{org_id}:revoked"
        await redis_module.redis_client.delete(key)
        return True
    except Exception as e:
        logger.warning("Error clearing token revocation for org %s: %s", org_id, e)
        return False
