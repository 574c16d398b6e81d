"""Player rating and profile aggregate route handlers."""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from kickabout.database import db
from kickabout.database.db import get_db_session
from kickabout.services import profile_store, rating_service
from kickabout.services.errors import ServiceError
from kickabout.api.auth_dependencies import get_current_user_id
from kickabout.api.errors import service_error_to_http
from kickabout.api.routes import limiter, RATING_RATE_LIMIT
from kickabout.models.schemas import (
    PlayerToRateResponse,
    ProfileAggregateResponse,
    RatingCreate,
    RatingResponse,
)

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/api/matches/{match_id}/ratings", response_model=RatingResponse)
@limiter.limit(RATING_RATE_LIMIT)
async def submit_rating(
    request: Request,
    match_id: int,
    payload: RatingCreate,
    user_id: int = Depends(get_current_user_id),
):
    """Rate another participant of a match."""
    try:
        return await db.run_in_transaction(
            rating_service.submit_rating,
            user_id,
            payload.rated_user_id,
            match_id,
            payload.grades(),
            suggestion=payload.suggestion,
        )
    except ServiceError as e:
        raise service_error_to_http(e)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error submitting rating: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error submitting rating")


@router.get("/api/matches/{match_id}/players-to-rate", response_model=List[PlayerToRateResponse])
async def get_players_to_rate(
    match_id: int,
    user_id: int = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db_session),
):
    """List the current user's fellow participants and whether each was rated."""
    try:
        return await rating_service.get_players_to_rate(session, match_id, user_id)
    except Exception as e:
        logger.error(f"Error fetching players to rate: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error fetching players to rate")


@router.get("/api/profiles/{profile_user_id}/aggregate", response_model=ProfileAggregateResponse)
async def get_profile_aggregate(
    profile_user_id: int,
    user_id: int = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db_session),
):
    """Get a user's aggregated rating scores."""
    try:
        aggregate = await profile_store.get_profile_aggregate(session, profile_user_id)
    except Exception as e:
        logger.error(f"Error fetching profile aggregate: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error fetching profile aggregate")
    if aggregate is None:
        raise HTTPException(
            status_code=404, detail={"error": "not_found", "user_id": profile_user_id}
        )
    return aggregate
