"""
Profile store interface used by the aggregation engine.

Profiles are created and edited elsewhere; this module only reads them and
patches them by id.
"""

from typing import Dict, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update
from kickabout.database.models import Profile, RATED_ATTRIBUTES

AGGREGATE_FIELDS = RATED_ATTRIBUTES + ("overall_score", "ratings_count")


def profile_by_user_query(user_id: int, for_update: bool = False):
    query = select(Profile).where(Profile.user_id == user_id)
    if for_update:
        query = query.with_for_update()
    return query


async def get_profile_by_user(
    session: AsyncSession, user_id: int, for_update: bool = False
) -> Optional[Profile]:
    """
    Get a user's profile.

    With for_update the row stays locked (SELECT ... FOR UPDATE) until the
    session's transaction ends. SQLite has no row locks and ignores it.
    """
    result = await session.execute(profile_by_user_query(user_id, for_update))
    return result.scalar_one_or_none()


async def patch_profile(session: AsyncSession, profile_id: int, values: Dict) -> None:
    """Write values onto the profile row in a single UPDATE."""
    await session.execute(
        update(Profile)
        .where(Profile.id == profile_id)
        .values(**values)
    )


async def get_profile_aggregate(session: AsyncSession, user_id: int) -> Optional[Dict]:
    """
    Read a user's aggregate rating fields.

    Selects columns rather than the ORM entity so the values always reflect
    the latest committed recompute.
    """
    result = await session.execute(
        select(
            Profile.user_id,
            Profile.display_name,
            *[getattr(Profile, field) for field in AGGREGATE_FIELDS],
        ).where(Profile.user_id == user_id)
    )
    row = result.one_or_none()
    if row is None:
        return None
    return dict(row._mapping)
