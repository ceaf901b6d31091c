"""
Request capability dependencies.

Session and login flows live at the site boundary, outside this service.
The boundary forwards two facts on each request:

- X-Premium-Access: "true" when the caller's subscription unlocks premium
  prediction fields (analysis text, win probabilities).
- X-Admin-Token: the shared admin secret, required by the write endpoints.
"""
import hmac
from typing import Optional

from fastapi import HTTPException, Security, status
from fastapi.security import APIKeyHeader

from app.core.config import settings
from app.core.logging import get_logger

logger = get_logger(__name__)

PREMIUM_HEADER = "X-Premium-Access"
ADMIN_TOKEN_HEADER = "X-Admin-Token"

_TRUTHY = {"1", "true", "yes", "on"}

premium_header = APIKeyHeader(name=PREMIUM_HEADER, auto_error=False)
admin_token_header = APIKeyHeader(name=ADMIN_TOKEN_HEADER, auto_error=False)


def premium_access(flag: Optional[str] = Security(premium_header)) -> bool:
    """Resolve the premium capability forwarded by the auth boundary."""
    return bool(flag) and flag.strip().lower() in _TRUTHY


def validate_admin_token(admin_token: Optional[str] = Security(admin_token_header)) -> bool:
    """
    Validate the admin token for write operations.

    Raises:
        HTTPException: 501 when admin is not configured, 403 on a bad token
    """
    if not settings.ADMIN_TOKEN:
        raise HTTPException(
            status_code=status.HTTP_501_NOT_IMPLEMENTED,
            detail="Admin functionality not enabled. Set ADMIN_TOKEN environment variable."
        )

    if not admin_token or not hmac.compare_digest(admin_token, settings.ADMIN_TOKEN):
        logger.warning("Rejected admin request with invalid token")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid admin token."
        )

    return True
