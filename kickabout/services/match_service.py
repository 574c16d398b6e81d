"""
Read-only view of the match service: who played in which match.
"""

from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from kickabout.database.models import Match, MatchParticipant


async def get_match(session: AsyncSession, match_id: int) -> Optional[Match]:
    result = await session.execute(select(Match).where(Match.id == match_id))
    return result.scalar_one_or_none()


async def get_participant_ids(session: AsyncSession, match_id: int) -> List[int]:
    """Get the user ids of a match's participants, in join order."""
    result = await session.execute(
        select(MatchParticipant.user_id)
        .where(MatchParticipant.match_id == match_id)
        .order_by(MatchParticipant.id)
    )
    return list(result.scalars().all())
