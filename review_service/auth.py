from fastapi import Depends, HTTPException, status
import httpx
import logging

from . import config

logger = logging.getLogger(__name__)


async def get_auth_client():
    async with httpx.AsyncClient(base_url=config.AUTH_SERVICE_URL, timeout=10.0) as client:
        yield client


async def get_current_user_id(token: str, client: httpx.AsyncClient = Depends(get_auth_client)) -> int:
    """Resolve the caller of a request through the auth service."""
    try:
        r = await client.post("/verify", json={"token": token})
    except httpx.HTTPError as e:
        logger.error(f"Auth service unreachable: {type(e).__name__}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Authentication service unavailable"
        )
    if r.status_code != 200:
        raise HTTPException(status_code=401, detail="Invalid token")
    try:
        return int(r.json()["user_id"])
    except (ValueError, TypeError, KeyError) as e:
        logger.error(f"Unexpected auth service response: {type(e).__name__}: {str(e)}")
        raise HTTPException(status_code=401, detail="Invalid token")
