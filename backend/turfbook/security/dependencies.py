import hmac
import logging
import os

from fastapi import Header, HTTPException, status

logger = logging.getLogger("turfbook.security")

DEV_ENVS = {"dev", "development", "local"}


def _is_dev_env() -> bool:
    return os.getenv("ENV", "dev").lower() in DEV_ENVS


def _unauthorized(error_code: str, human_message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"error_code": error_code, "human_message": human_message},
    )


def require_admin_api_key(
    x_admin_key: str | None = Header(default=None, alias="X-Admin-Key"),
) -> None:
    """Guard for booking approval, rejection and deletion.

    The key is read per request so rotating ``ADMIN_API_KEY`` needs no restart.
    """
    configured_key = os.getenv("ADMIN_API_KEY", "")

    if not configured_key:
        if _is_dev_env():
            logger.warning("ADMIN_API_KEY is not set; admin booking routes are open in dev.")
            return
        raise _unauthorized("ADMIN_AUTH_NOT_CONFIGURED", "Admin API key is not configured.")

    if not hmac.compare_digest((x_admin_key or "").encode(), configured_key.encode()):
        logger.warning("Rejected admin request with %s admin key.", "an invalid" if x_admin_key else "no")
        raise _unauthorized("INVALID_ADMIN_API_KEY", "Invalid admin API key.")
