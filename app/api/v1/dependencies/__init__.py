"""Reusable API dependencies shared across v1 routes."""

import logging
import secrets
from typing import Annotated

from fastapi import HTTPException, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.config import settings

logger = logging.getLogger(__name__)

cron_bearer = HTTPBearer(auto_error=False)


async def require_cron_secret(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Security(cron_bearer)],
) -> None:
    """Require ``Authorization: Bearer <cron_secret>`` when a secret is configured."""
    expected = settings.cron_secret
    if not expected:
        return

    candidate = credentials.credentials if credentials else ""
    if not secrets.compare_digest(candidate.encode(), expected.encode()):
        logger.warning("Unauthorized workflow request")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )


__all__ = ["require_cron_secret"]
