import logging
import secrets
from fastapi import Header, HTTPException, Request, status
from pos_api.core.config import settings

logger = logging.getLogger(__name__)

def require_admin_key(
    request: Request,
    x_admin_key: str | None = Header(default=None, alias="X-ADMIN-KEY"),
) -> None:
    """Back-office operators authenticate every call with the shared admin key."""
    if x_admin_key and secrets.compare_digest(x_admin_key.encode(), settings.ADMIN_KEY.encode()):
        return
    logger.warning(f"[auth] rejected {request.method} {request.url.path}")
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid admin key",
    )
