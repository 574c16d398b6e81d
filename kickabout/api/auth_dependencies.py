"""
Authentication dependencies for FastAPI routes.

The acting user's id is resolved here and passed explicitly into every
service call; services never look it up themselves.
"""

from typing import Optional
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from kickabout.database.db import get_db_session
from kickabout.services import identity_service
from kickabout.services.errors import Unauthenticated
from kickabout.api.errors import service_error_to_http

security = HTTPBearer(auto_error=False)


async def get_current_user_id(
    session: AsyncSession = Depends(get_db_session),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> int:
    """
    Dependency to get the acting user's id from the bearer token.

    Raises:
        HTTPException: 401 if the token is missing, unknown or expired
    """
    if credentials is None:
        raise service_error_to_http(Unauthenticated(reason="missing_token"))

    user_id = await identity_service.verify_token(session, credentials.credentials)
    if user_id is None:
        raise service_error_to_http(Unauthenticated(reason="invalid_token"))
    return user_id
