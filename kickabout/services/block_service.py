"""
Block service.

Blocks are directed (blocker -> blocked) and independent of friend requests,
but creating one ends any accepted friendship between the pair, and while a
block exists in either direction no friend request may be sent or accepted.
"""

from typing import Dict, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete, and_, or_
from kickabout.database.models import Block, FriendRequest, FriendRequestStatus
from kickabout.services import friendship_state
from kickabout.services.errors import AlreadyExists, InvalidTarget, require_actor
from kickabout.utils.datetime_utils import isoformat_or_none
import logging

logger = logging.getLogger(__name__)

BLOCK_STATUS_NONE = "none"
BLOCK_STATUS_BLOCKED_YOU = "blocked_you"
BLOCK_STATUS_BLOCKED_BY_YOU = "blocked_by_you"


def _canonical_pair(user_a: int, user_b: int):
    return (user_a, user_b) if user_a < user_b else (user_b, user_a)


async def get_block(
    session: AsyncSession, blocker_id: int, blocked_id: int
) -> Optional[Block]:
    """Get the block blocker_id placed on blocked_id, if any."""
    result = await session.execute(
        select(Block).where(
            and_(Block.blocker_id == blocker_id, Block.blocked_id == blocked_id)
        )
    )
    return result.scalar_one_or_none()


async def is_blocked_either_way(session: AsyncSession, user_a: int, user_b: int) -> bool:
    """
    Check whether a block exists between two users in either direction.

    Args:
        session: Database session
        user_a: First user ID
        user_b: Second user ID

    Returns:
        True if either user has blocked the other
    """
    result = await session.execute(
        select(Block.id)
        .where(
            or_(
                and_(Block.blocker_id == user_a, Block.blocked_id == user_b),
                and_(Block.blocker_id == user_b, Block.blocked_id == user_a),
            )
        )
        .limit(1)
    )
    return result.scalar_one_or_none() is not None


async def block_user(session: AsyncSession, blocker_id: int, blocked_id: int) -> Dict:
    """
    Block another user.

    Inserts the block and, in the same transaction, force-removes any
    accepted friend request between the two users. Pending requests are left
    alone; they can still be declined but not accepted while the block exists.

    Args:
        session: Database session
        blocker_id: Acting user
        blocked_id: User being blocked

    Returns:
        Dict with block data and the id of the friendship that was ended (if any)

    Raises:
        Unauthenticated: No acting user
        InvalidTarget: Blocking yourself
        AlreadyExists: This exact block already exists
    """
    require_actor(blocker_id)
    if blocker_id == blocked_id:
        raise InvalidTarget(user_id=blocker_id)

    if await get_block(session, blocker_id, blocked_id):
        raise AlreadyExists(blocker_id=blocker_id, blocked_id=blocked_id)

    block = Block(blocker_id=blocker_id, blocked_id=blocked_id)
    session.add(block)
    await session.flush()
    await session.refresh(block)

    low, high = _canonical_pair(blocker_id, blocked_id)
    result = await session.execute(
        select(FriendRequest).where(
            and_(
                FriendRequest.user_low_id == low,
                FriendRequest.user_high_id == high,
                FriendRequest.status == FriendRequestStatus.ACCEPTED.value,
            )
        )
    )
    friendship = result.scalar_one_or_none()
    removed_request_id = None
    if friendship:
        friendship_state.apply_transition(
            friendship,
            friendship_state.FriendAction.BLOCK_REMOVAL,
            friendship_state.Role.SYSTEM,
        )
        await session.flush()
        removed_request_id = friendship.id
        logger.info(
            f"Friendship {friendship.id} removed because user {blocker_id} blocked user {blocked_id}"
        )

    logger.info(f"User {blocker_id} blocked user {blocked_id}")
    return {**_format_block(block), "removed_friend_request_id": removed_request_id}


async def unblock_user(session: AsyncSession, blocker_id: int, blocked_id: int) -> bool:
    """
    Remove a block. Friend requests are not restored; the pair must re-request.

    Args:
        session: Database session
        blocker_id: Acting user (who placed the block)
        blocked_id: User to unblock

    Returns:
        True if a block was deleted, False if there was none
    """
    require_actor(blocker_id)
    result = await session.execute(
        delete(Block).where(
            and_(Block.blocker_id == blocker_id, Block.blocked_id == blocked_id)
        )
    )
    await session.flush()
    deleted = (result.rowcount or 0) > 0
    if deleted:
        logger.info(f"User {blocker_id} unblocked user {blocked_id}")
    return deleted


async def get_block_status(session: AsyncSession, user_id: int, other_user_id: int) -> str:
    """
    Get the block status between two users from user_id's point of view.

    Both directions are checked independently. If both users blocked each
    other, the caller's own block is reported.

    Returns:
        "blocked_by_you", "blocked_you" or "none"
    """
    if await get_block(session, user_id, other_user_id):
        return BLOCK_STATUS_BLOCKED_BY_YOU
    if await get_block(session, other_user_id, user_id):
        return BLOCK_STATUS_BLOCKED_YOU
    return BLOCK_STATUS_NONE


async def list_blocked_users(session: AsyncSession, blocker_id: int) -> List[Dict]:
    """List the blocks a user has placed, newest first."""
    result = await session.execute(
        select(Block)
        .where(Block.blocker_id == blocker_id)
        .order_by(Block.created_at.desc(), Block.id.desc())
    )
    return [_format_block(block) for block in result.scalars().all()]


def _format_block(block: Block) -> Dict:
    return {
        "id": block.id,
        "blocker_id": block.blocker_id,
        "blocked_id": block.blocked_id,
        "created_at": isoformat_or_none(block.created_at),
    }
