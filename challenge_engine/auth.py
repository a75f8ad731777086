from fastapi import HTTPException, Security, status
from fastapi.security import APIKeyHeader
import os

from challenge_engine.constants import DEFAULT_API_KEY

# API key shared with the upstream gateway that authenticates end users
API_KEY = os.getenv("CHALLENGE_ENGINE_API_KEY", DEFAULT_API_KEY)

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)
user_id_header = APIKeyHeader(name="X-User-Id", auto_error=False)


async def verify_api_key(api_key: str = Security(api_key_header)):
    """Verify API key for authentication"""
    if not api_key or api_key != API_KEY:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API Key"
        )
    return api_key


async def get_current_user_id(user_id: str = Security(user_id_header)) -> str:
    """Trusted user id resolved by the upstream gateway"""
    if not user_id or not user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-Id header"
        )
    return user_id.strip()
