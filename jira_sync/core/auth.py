import secrets
from typing import Optional
from fastapi import HTTPException, Security, status
from fastapi.security import APIKeyHeader
from jira_sync.config import settings


api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


def verify_api_key(api_key: Optional[str] = Security(api_key_header)) -> str:
    """Verify the X-API-Key header. Disabled when no api_key is configured."""
    if not settings.api_key:
        return "anonymous"

    if api_key is None or not secrets.compare_digest(
        api_key.encode("utf8"),
        settings.api_key.encode("utf8")
    ):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API key",
        )

    return "api-key"
