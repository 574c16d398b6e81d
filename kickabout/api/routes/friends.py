"""Friend system route handlers."""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from kickabout.database import db
from kickabout.database.db import get_db_session
from kickabout.services import friend_service
from kickabout.services.errors import ServiceError
from kickabout.api.auth_dependencies import get_current_user_id
from kickabout.api.errors import service_error_to_http
from kickabout.api.routes import limiter, FRIEND_REQUEST_RATE_LIMIT
from kickabout.models.schemas import (
    FriendRequestCreate,
    FriendRequestResponse,
    FriendResponse,
    FriendshipStatusResponse,
    MutualFriendsResponse,
)

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/api/friends/request", response_model=FriendRequestResponse)
@limiter.limit(FRIEND_REQUEST_RATE_LIMIT)
async def send_friend_request(
    request: Request,
    payload: FriendRequestCreate,
    user_id: int = Depends(get_current_user_id),
):
    """Send a friend request to another user."""
    try:
        return await db.run_in_transaction(
            friend_service.send_friend_request, user_id, payload.requestee_id
        )
    except ServiceError as e:
        raise service_error_to_http(e)
    except Exception as e:
        logger.error(f"Error sending friend request: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error sending friend request")


@router.post("/api/friends/requests/{request_id}/accept", response_model=FriendRequestResponse)
async def accept_friend_request(
    request_id: int,
    user_id: int = Depends(get_current_user_id),
):
    """Accept a pending friend request (requestee only)."""
    try:
        return await db.run_in_transaction(
            friend_service.accept_friend_request, request_id, user_id
        )
    except ServiceError as e:
        raise service_error_to_http(e)
    except Exception as e:
        logger.error(f"Error accepting friend request: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error accepting friend request")


@router.post("/api/friends/requests/{request_id}/decline", response_model=FriendRequestResponse)
async def decline_friend_request(
    request_id: int,
    user_id: int = Depends(get_current_user_id),
):
    """Decline an incoming request or cancel an outgoing one."""
    try:
        return await db.run_in_transaction(
            friend_service.decline_friend_request, request_id, user_id
        )
    except ServiceError as e:
        raise service_error_to_http(e)
    except Exception as e:
        logger.error(f"Error declining friend request: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error declining friend request")


@router.post("/api/friends/requests/{request_id}/remove", response_model=FriendRequestResponse)
async def remove_friend(
    request_id: int,
    user_id: int = Depends(get_current_user_id),
):
    """Remove a friend (unfriend)."""
    try:
        return await db.run_in_transaction(friend_service.remove_friend, request_id, user_id)
    except ServiceError as e:
        raise service_error_to_http(e)
    except Exception as e:
        logger.error(f"Error removing friend: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error removing friend")


@router.get("/api/friends", response_model=List[FriendResponse])
async def list_friends(
    user_id: int = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db_session),
):
    """Get the current user's friends."""
    try:
        return await friend_service.list_friends(session, user_id)
    except Exception as e:
        logger.error(f"Error fetching friends: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error fetching friends")


@router.get("/api/friends/requests", response_model=List[FriendRequestResponse])
async def get_friend_requests(
    direction: str = Query("both", pattern="^(incoming|outgoing|both)$"),
    user_id: int = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db_session),
):
    """Get pending friend requests."""
    try:
        return await friend_service.get_friend_requests(session, user_id, direction=direction)
    except Exception as e:
        logger.error(f"Error fetching friend requests: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error fetching friend requests")


@router.get("/api/friends/status/{other_user_id}", response_model=FriendshipStatusResponse)
async def get_friendship_status(
    other_user_id: int,
    user_id: int = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db_session),
):
    """Get the active relationship between the current user and another user."""
    try:
        return await friend_service.get_friendship_status(session, user_id, other_user_id)
    except Exception as e:
        logger.error(f"Error fetching friendship status: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error fetching friendship status")


@router.get("/api/friends/mutual/{other_user_id}", response_model=MutualFriendsResponse)
async def get_mutual_friends(
    other_user_id: int,
    user_id: int = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db_session),
):
    """Get mutual friends between the current user and another user."""
    try:
        mutual = await friend_service.get_mutual_friends(session, user_id, other_user_id)
        return {"user_ids": mutual}
    except Exception as e:
        logger.error(f"Error fetching mutual friends: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error fetching mutual friends")
