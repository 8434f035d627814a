"""
API key check for the backup endpoints.
Rejected attempts are logged with the client address so fail2ban can pick them up.
"""
import logging
import secrets
from typing import Optional

from fastapi import HTTPException, Request, Security, status
from fastapi.security import APIKeyHeader

from crm_store import config

logger = logging.getLogger("crm_store.auth")

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


async def verify_api_key(request: Request, api_key: Optional[str] = Security(api_key_header)):
    """Verify API key for authentication"""
    if not api_key or not secrets.compare_digest(api_key, config.API_KEY):
        client = request.client.host if request.client else "unknown"
        logger.warning(f"Rejected API key from {client} on {request.url.path}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API Key"
        )
    return api_key
