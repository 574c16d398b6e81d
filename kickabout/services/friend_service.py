"""
Friend service for managing friend requests and friendships.

A friendship is a FriendRequest that reached "accepted". Records are never
reused: declined/removed requests stay as history and a new request starts a
new row. All status changes go through friendship_state.
"""

from typing import List, Dict, Set, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, or_, case
from kickabout.database.models import (
    ACTIVE_FRIEND_REQUEST_STATUSES,
    FriendRequest,
    FriendRequestStatus,
    Profile,
)
from kickabout.services import block_service, friendship_state
from kickabout.services.errors import (
    AlreadyExists,
    Blocked,
    InvalidTarget,
    NotFound,
    require_actor,
)
from kickabout.services.friendship_state import FriendAction
from kickabout.utils.datetime_utils import isoformat_or_none
import logging

logger = logging.getLogger(__name__)

FRIENDSHIP_STATUS_NONE = "none"


def canonical_pair(user_a: int, user_b: int):
    """Order two user ids so (a, b) and (b, a) map to the same key."""
    return (user_a, user_b) if user_a < user_b else (user_b, user_a)


async def get_active_request(
    session: AsyncSession, user_a: int, user_b: int
) -> Optional[FriendRequest]:
    """
    Get the pending or accepted friend request between two users (either direction).

    Args:
        session: Database session
        user_a: First user ID
        user_b: Second user ID

    Returns:
        FriendRequest or None
    """
    low, high = canonical_pair(user_a, user_b)
    result = await session.execute(
        select(FriendRequest).where(
            and_(
                FriendRequest.user_low_id == low,
                FriendRequest.user_high_id == high,
                FriendRequest.status.in_(ACTIVE_FRIEND_REQUEST_STATUSES),
            )
        )
    )
    return result.scalar_one_or_none()


async def get_friend_ids(session: AsyncSession, user_id: int) -> Set[int]:
    """
    Get the set of all friend user ids for a given user.

    Args:
        session: Database session
        user_id: User to look up friends for

    Returns:
        Set of friend user IDs
    """
    result = await session.execute(
        select(
            case(
                (FriendRequest.requester_id == user_id, FriendRequest.requestee_id),
                else_=FriendRequest.requester_id,
            )
        ).where(
            and_(
                FriendRequest.status == FriendRequestStatus.ACCEPTED.value,
                or_(
                    FriendRequest.requester_id == user_id,
                    FriendRequest.requestee_id == user_id,
                ),
            )
        )
    )
    return set(result.scalars().all())


async def send_friend_request(
    session: AsyncSession, requester_id: int, requestee_id: int
) -> Dict:
    """
    Send a friend request from one user to another.

    Args:
        session: Database session
        requester_id: Acting user
        requestee_id: User receiving the request

    Returns:
        Dict with friend request data

    Raises:
        Unauthenticated: No acting user
        InvalidTarget: Requesting yourself
        Blocked: Either user has blocked the other
        AlreadyExists: A pending or accepted request exists between the pair
    """
    require_actor(requester_id)
    if requester_id == requestee_id:
        raise InvalidTarget(user_id=requester_id)

    if await block_service.is_blocked_either_way(session, requester_id, requestee_id):
        raise Blocked(user_id=requester_id, other_user_id=requestee_id)

    existing = await get_active_request(session, requester_id, requestee_id)
    if existing:
        raise AlreadyExists(
            request_id=existing.id,
            requester_id=existing.requester_id,
            requestee_id=existing.requestee_id,
            status=existing.status,
        )

    low, high = canonical_pair(requester_id, requestee_id)
    friend_request = FriendRequest(
        requester_id=requester_id,
        requestee_id=requestee_id,
        user_low_id=low,
        user_high_id=high,
        status=FriendRequestStatus.PENDING.value,
    )
    session.add(friend_request)
    await session.flush()
    await session.refresh(friend_request)

    logger.info(f"User {requester_id} sent friend request {friend_request.id} to user {requestee_id}")
    return format_friend_request(friend_request)


async def _load_request(session: AsyncSession, request_id: int) -> FriendRequest:
    result = await session.execute(
        select(FriendRequest).where(FriendRequest.id == request_id)
    )
    friend_request = result.scalar_one_or_none()
    if not friend_request:
        raise NotFound(request_id=request_id)
    return friend_request


async def _transition(
    session: AsyncSession, request_id: int, acting_user_id: int, action: FriendAction
) -> Dict:
    require_actor(acting_user_id)
    friend_request = await _load_request(session, request_id)
    role = friendship_state.role_of(friend_request, acting_user_id)

    if action == FriendAction.ACCEPT:
        # Validate the move before the block check so a stale or foreign
        # request reports NotFound/Forbidden rather than Blocked.
        transition = friendship_state.lookup(friend_request.status, action)
        if transition is not None and role in transition.allowed_roles:
            if await block_service.is_blocked_either_way(
                session, friend_request.requester_id, friend_request.requestee_id
            ):
                raise Blocked(request_id=request_id, user_id=acting_user_id)

    previous = friend_request.status
    friendship_state.apply_transition(friend_request, action, role)
    await session.flush()

    logger.info(
        f"Friend request {request_id}: {previous} -> {friend_request.status} "
        f"({action.value} by user {acting_user_id})"
    )
    return format_friend_request(friend_request)


async def accept_friend_request(
    session: AsyncSession, request_id: int, acting_user_id: int
) -> Dict:
    """
    Accept a pending friend request. Only the requestee may accept.

    Raises:
        NotFound: No pending request with this id
        Forbidden: Acting user is not the requestee
        Blocked: A block exists between the pair
    """
    return await _transition(session, request_id, acting_user_id, FriendAction.ACCEPT)


async def decline_friend_request(
    session: AsyncSession, request_id: int, acting_user_id: int
) -> Dict:
    """
    Decline (requestee) or cancel (requester) a pending friend request.

    Raises:
        NotFound: No pending request with this id
        Forbidden: Acting user is not a party to the request
    """
    return await _transition(session, request_id, acting_user_id, FriendAction.DECLINE)


async def remove_friend(
    session: AsyncSession, request_id: int, acting_user_id: int
) -> Dict:
    """
    End an accepted friendship. Either party may remove.

    Raises:
        NotFound: No accepted request with this id
        Forbidden: Acting user is not a party to the friendship
    """
    return await _transition(session, request_id, acting_user_id, FriendAction.REMOVE)


async def get_friendship_status(session: AsyncSession, user_a: int, user_b: int) -> Dict:
    """
    Get the active relationship between two users.

    Returns:
        Dict with status "none" or the active request's status, plus the
        request itself when there is one
    """
    friend_request = await get_active_request(session, user_a, user_b)
    if not friend_request:
        return {"status": FRIENDSHIP_STATUS_NONE, "request": None}
    return {"status": friend_request.status, "request": format_friend_request(friend_request)}


async def list_friends(session: AsyncSession, user_id: int) -> List[Dict]:
    """
    List every user with an accepted friendship involving user_id.

    Returns:
        List of dicts with the friend's user id, display name and the
        id of the accepted request (needed to remove the friend)
    """
    friend_id_col = case(
        (FriendRequest.requester_id == user_id, FriendRequest.requestee_id),
        else_=FriendRequest.requester_id,
    )

    result = await session.execute(
        select(
            FriendRequest.id,
            friend_id_col.label("friend_user_id"),
            FriendRequest.updated_at,
            Profile.display_name,
        )
        .outerjoin(Profile, Profile.user_id == friend_id_col)
        .where(
            and_(
                FriendRequest.status == FriendRequestStatus.ACCEPTED.value,
                or_(
                    FriendRequest.requester_id == user_id,
                    FriendRequest.requestee_id == user_id,
                ),
            )
        )
        .order_by(FriendRequest.updated_at.desc(), FriendRequest.id.desc())
    )
    return [
        {
            "request_id": row.id,
            "user_id": row.friend_user_id,
            "display_name": row.display_name,
            "friends_since": isoformat_or_none(row.updated_at),
        }
        for row in result.all()
    ]


async def get_friend_requests(
    session: AsyncSession, user_id: int, direction: str = "both"
) -> List[Dict]:
    """
    Get pending friend requests for a user.

    Args:
        session: Database session
        user_id: User to get requests for
        direction: "incoming", "outgoing", or "both"

    Returns:
        List of friend request dicts
    """
    query = select(FriendRequest).where(
        FriendRequest.status == FriendRequestStatus.PENDING.value
    )

    if direction == "incoming":
        query = query.where(FriendRequest.requestee_id == user_id)
    elif direction == "outgoing":
        query = query.where(FriendRequest.requester_id == user_id)
    else:
        query = query.where(
            or_(
                FriendRequest.requester_id == user_id,
                FriendRequest.requestee_id == user_id,
            )
        )

    query = query.order_by(FriendRequest.created_at.desc(), FriendRequest.id.desc())
    result = await session.execute(query)
    return [format_friend_request(req) for req in result.scalars().all()]


async def get_mutual_friends(session: AsyncSession, user_id: int, other_user_id: int) -> List[int]:
    """
    Get the ids of users who are friends with both users, sorted.
    """
    my_friends = await get_friend_ids(session, user_id)
    their_friends = await get_friend_ids(session, other_user_id)
    return sorted(my_friends & their_friends)


def format_friend_request(friend_request: FriendRequest) -> Dict:
    """Format a FriendRequest ORM object into a response dict."""
    return {
        "id": friend_request.id,
        "requester_id": friend_request.requester_id,
        "requestee_id": friend_request.requestee_id,
        "status": friend_request.status,
        "created_at": isoformat_or_none(friend_request.created_at),
        "updated_at": isoformat_or_none(friend_request.updated_at),
    }
