"""
Admin Authentication

Shared-secret header check for admin and monitoring endpoints.
"""

import secrets
from typing import Optional

from fastapi import Header, HTTPException, Request, status

from fetchnews.config.logging import get_logger
from fetchnews.config.settings import get_settings
from fetchnews.services.runtime_settings import RuntimeSettings

logger = get_logger(__name__)


async def verify_admin_token(x_admin_token: Optional[str] = Header(None)) -> bool:
    """
    Optional authentication for admin endpoints.
    Set ADMIN_TOKEN env var to enable protection.
    """
    admin_token = get_settings().admin_token
    if admin_token and not secrets.compare_digest(x_admin_token or "", admin_token):
        logger.warning("Rejected admin request with invalid token")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid admin token",
        )
    return True


def get_runtime_settings(request: Request) -> RuntimeSettings:
    """The runtime settings instance created at startup."""
    runtime_settings = getattr(request.app.state, "runtime_settings", None)
    if runtime_settings is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Runtime settings not initialized",
        )
    return runtime_settings
