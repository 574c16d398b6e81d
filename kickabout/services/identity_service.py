"""
Identity provider lookups.

Tokens are issued by the auth service; here they are only resolved to the
user they belong to. Only a SHA-256 digest of each token is stored.
"""

import hashlib
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, or_
from kickabout.database.models import AuthToken
from kickabout.utils.datetime_utils import utcnow


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


async def verify_token(session: AsyncSession, token: str) -> Optional[int]:
    """
    Resolve a bearer token to its user id.

    Args:
        session: Database session
        token: Raw bearer token

    Returns:
        User ID, or None if the token is unknown or expired
    """
    if not token:
        return None
    result = await session.execute(
        select(AuthToken.user_id).where(
            and_(
                AuthToken.token_hash == hash_token(token),
                or_(AuthToken.expires_at.is_(None), AuthToken.expires_at > utcnow()),
            )
        )
    )
    return result.scalar_one_or_none()
