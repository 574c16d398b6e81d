"""
Rating aggregation.

A user's aggregate is always rebuilt from their full rating ledger, never
patched incrementally, so a missed update can't leave it drifting.

Scoring:
    - Each letter grade maps to a score: S=100, A=80, B=60, C=40, D=20.
    - Each attribute's average only counts the ratings that graded it.
      An attribute nobody graded averages 0.
    - overall_score is the plain mean of the six attribute averages, so
      ungraded attributes pull it down.
    - ratings_count is the number of ratings, whatever they graded.

recompute_aggregate locks the profile row (SELECT ... FOR UPDATE) before it
reads the ledger. A second recompute for the same user, in this process or
another worker, waits for the first to commit and then reads every rating
the first one saw, so a stale aggregate never overwrites a newer one.
"""

import logging
from typing import Dict, Iterable, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from kickabout.database.models import PlayerRating, RATED_ATTRIBUTES
from kickabout.services import profile_store

logger = logging.getLogger(__name__)

GRADE_SCORES = {"S": 100, "A": 80, "B": 60, "C": 40, "D": 20}


def compute_aggregate(ratings: Iterable) -> Dict:
    """
    Compute aggregate profile fields from a set of ratings.

    Args:
        ratings: Objects exposing the six attribute grades as attributes
            (PlayerRating rows or anything shaped like them); None means
            the rater skipped that attribute.

    Returns:
        Dict with one average per attribute, overall_score and ratings_count
    """
    sums = {attribute: 0 for attribute in RATED_ATTRIBUTES}
    counts = {attribute: 0 for attribute in RATED_ATTRIBUTES}
    ratings_count = 0

    for rating in ratings:
        ratings_count += 1
        for attribute in RATED_ATTRIBUTES:
            grade = getattr(rating, attribute, None)
            if grade:
                sums[attribute] += GRADE_SCORES[grade]
                counts[attribute] += 1

    aggregate = {
        attribute: (sums[attribute] / counts[attribute]) if counts[attribute] else 0.0
        for attribute in RATED_ATTRIBUTES
    }
    # TODO: confirm with product whether ungraded attributes should be left out
    # of overall_score instead of counting as 0.
    aggregate["overall_score"] = sum(aggregate[a] for a in RATED_ATTRIBUTES) / len(RATED_ATTRIBUTES)
    aggregate["ratings_count"] = ratings_count
    return aggregate


async def recompute_aggregate(session: AsyncSession, user_id: int) -> Optional[Dict]:
    """
    Rebuild a user's aggregate from their ledger and write it to their profile.

    Args:
        session: Database session (caller commits)
        user_id: Rated user

    Returns:
        The aggregate that was written, or None if the user has no profile
    """
    # Lock the profile before reading the ledger so recomputes of the same user
    # from other processes run one after another.
    profile = await profile_store.get_profile_by_user(session, user_id, for_update=True)
    if not profile:
        logger.info(f"Skipping aggregate recompute for user {user_id}: no profile")
        return None

    result = await session.execute(
        select(PlayerRating).where(PlayerRating.rated_id == user_id)
    )
    aggregate = compute_aggregate(result.scalars().all())

    await profile_store.patch_profile(session, profile.id, aggregate)
    logger.debug(
        f"Recomputed aggregate for user {user_id}: overall={aggregate['overall_score']:.2f} "
        f"from {aggregate['ratings_count']} ratings"
    )
    return aggregate
