"""
Rating ledger.

Players rate each other per match on six attributes with letter grades.
Ratings are insert-only: one per (match, rater, rated player). Each new
rating schedules a recompute of the rated player's aggregate once the
inserting transaction commits.
"""

from typing import Dict, List, Mapping, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_
from kickabout.database import db
from kickabout.database.models import Grade, PlayerRating, Profile, RATED_ATTRIBUTES
from kickabout.services import match_service
from kickabout.services.aggregation_queue import get_aggregation_queue
from kickabout.services.errors import AlreadySubmitted, SelfRating, require_actor
from kickabout.utils.datetime_utils import isoformat_or_none
import logging

logger = logging.getLogger(__name__)

DEFAULT_DISPLAY_NAME = "Egoist"
DEFAULT_POSITION = "Midfield"


async def get_rating(
    session: AsyncSession, match_id: int, rater_id: int, rated_id: int
) -> Optional[PlayerRating]:
    result = await session.execute(
        select(PlayerRating).where(
            and_(
                PlayerRating.match_id == match_id,
                PlayerRating.rater_id == rater_id,
                PlayerRating.rated_id == rated_id,
            )
        )
    )
    return result.scalar_one_or_none()


async def submit_rating(
    session: AsyncSession,
    rater_id: int,
    rated_id: int,
    match_id: int,
    grades: Mapping[str, Optional[str]],
    suggestion: Optional[str] = None,
) -> Dict:
    """
    Record one player's rating of another for a match.

    Args:
        session: Database session
        rater_id: Acting user
        rated_id: Player being rated
        match_id: Match the rating is for
        grades: Attribute name -> letter grade; missing or None attributes are skipped
        suggestion: Optional free-text note for the rated player

    Returns:
        Dict with rating data

    Raises:
        Unauthenticated: No acting user
        SelfRating: Rating yourself
        AlreadySubmitted: This rater already rated this player for this match
        ValueError: Unknown attribute or grade
    """
    require_actor(rater_id)
    if rater_id == rated_id:
        raise SelfRating(user_id=rater_id, match_id=match_id)

    unknown = set(grades) - set(RATED_ATTRIBUTES)
    if unknown:
        raise ValueError(f"Unknown rating attributes: {sorted(unknown)}")

    if await get_rating(session, match_id, rater_id, rated_id):
        raise AlreadySubmitted(match_id=match_id, rater_id=rater_id, rated_id=rated_id)

    rating = PlayerRating(
        match_id=match_id,
        rater_id=rater_id,
        rated_id=rated_id,
        suggestion=suggestion,
        **{attribute: _grade_value(grades.get(attribute)) for attribute in RATED_ATTRIBUTES},
    )
    session.add(rating)
    await session.flush()
    await session.refresh(rating)

    db.after_commit(session, lambda: get_aggregation_queue().enqueue(rated_id))

    logger.info(f"User {rater_id} rated user {rated_id} for match {match_id}")
    return format_rating(rating)


def _grade_value(grade) -> Optional[str]:
    if grade is None:
        return None
    value = getattr(grade, "value", grade)
    if value not in {g.value for g in Grade}:
        raise ValueError(f"Invalid grade: {value!r}")
    return value


async def get_players_to_rate(
    session: AsyncSession, match_id: int, rater_id: Optional[int]
) -> List[Dict]:
    """
    List the other participants of a match and whether rater_id has rated them.

    Args:
        session: Database session
        match_id: Match ID
        rater_id: Acting user

    Returns:
        List of dicts with user_id, already_rated, display_name and
        favorite_position. Empty if there is no acting user or no such match.
    """
    if rater_id is None:
        return []
    if not await match_service.get_match(session, match_id):
        return []

    participant_ids = [
        uid for uid in await match_service.get_participant_ids(session, match_id)
        if uid != rater_id
    ]
    if not participant_ids:
        return []

    rated_result = await session.execute(
        select(PlayerRating.rated_id).where(
            and_(PlayerRating.match_id == match_id, PlayerRating.rater_id == rater_id)
        )
    )
    already_rated = set(rated_result.scalars().all())

    profile_result = await session.execute(
        select(Profile.user_id, Profile.display_name, Profile.favorite_position).where(
            Profile.user_id.in_(participant_ids)
        )
    )
    profile_map = {row.user_id: row for row in profile_result.all()}

    players = []
    for uid in participant_ids:
        profile = profile_map.get(uid)
        players.append(
            {
                "user_id": uid,
                "already_rated": uid in already_rated,
                "display_name": profile.display_name if profile else DEFAULT_DISPLAY_NAME,
                "favorite_position": (
                    profile.favorite_position if profile and profile.favorite_position
                    else DEFAULT_POSITION
                ),
            }
        )
    return players


async def get_ratings_for_user(session: AsyncSession, rated_id: int) -> List[Dict]:
    """Get every rating a user has received, oldest first."""
    result = await session.execute(
        select(PlayerRating)
        .where(PlayerRating.rated_id == rated_id)
        .order_by(PlayerRating.id)
    )
    return [format_rating(rating) for rating in result.scalars().all()]


def format_rating(rating: PlayerRating) -> Dict:
    """Format a PlayerRating ORM object into a response dict."""
    return {
        "id": rating.id,
        "match_id": rating.match_id,
        "rater_id": rating.rater_id,
        "rated_id": rating.rated_id,
        "grades": {attribute: getattr(rating, attribute) for attribute in RATED_ATTRIBUTES},
        "suggestion": rating.suggestion,
        "created_at": isoformat_or_none(rating.created_at),
    }
