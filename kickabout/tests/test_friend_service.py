"""
Unit tests for friend service.

Tests friend request lifecycle, duplicate prevention, block interaction,
history retention and friend listings.
"""

import pytest
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from kickabout.database.models import FriendRequest, FriendRequestStatus, Block
from kickabout.services import friend_service
from kickabout.services.errors import (
    AlreadyExists,
    Blocked,
    Forbidden,
    InvalidTarget,
    NotFound,
    Unauthenticated,
)


async def _active_count(db_session, user_a, user_b):
    low, high = friend_service.canonical_pair(user_a, user_b)
    result = await db_session.execute(
        select(func.count(FriendRequest.id)).where(
            FriendRequest.user_low_id == low,
            FriendRequest.user_high_id == high,
            FriendRequest.status.in_(["pending", "accepted"]),
        )
    )
    return result.scalar_one()


# ──────────────────────────────────────────────────────────────
# Send request
# ──────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_send_friend_request(db_session, users):
    """Test sending a friend request creates a pending request."""
    result = await friend_service.send_friend_request(db_session, users["alice"], users["bob"])
    assert result["requester_id"] == users["alice"]
    assert result["requestee_id"] == users["bob"]
    assert result["status"] == "pending"
    assert result["id"] > 0


@pytest.mark.asyncio
async def test_cannot_friend_yourself(db_session, users):
    """Test that sending a friend request to yourself raises InvalidTarget."""
    with pytest.raises(InvalidTarget):
        await friend_service.send_friend_request(db_session, users["alice"], users["alice"])


@pytest.mark.asyncio
async def test_send_requires_actor(db_session, users):
    """Test that a missing acting identity is rejected."""
    with pytest.raises(Unauthenticated):
        await friend_service.send_friend_request(db_session, None, users["bob"])


@pytest.mark.asyncio
async def test_duplicate_request_prevention(db_session, users):
    """Test that sending the same request twice fails the second time."""
    first = await friend_service.send_friend_request(db_session, users["alice"], users["bob"])

    with pytest.raises(AlreadyExists) as exc_info:
        await friend_service.send_friend_request(db_session, users["alice"], users["bob"])
    assert exc_info.value.context["request_id"] == first["id"]
    assert await _active_count(db_session, users["alice"], users["bob"]) == 1


@pytest.mark.asyncio
async def test_reverse_request_rejected(db_session, users):
    """Test the pair is unordered: B cannot request A while A->B is pending."""
    await friend_service.send_friend_request(db_session, users["alice"], users["bob"])

    with pytest.raises(AlreadyExists):
        await friend_service.send_friend_request(db_session, users["bob"], users["alice"])


@pytest.mark.asyncio
async def test_request_rejected_when_already_friends(db_session, users):
    """Test an accepted friendship blocks a new request in either direction."""
    req = await friend_service.send_friend_request(db_session, users["alice"], users["bob"])
    await friend_service.accept_friend_request(db_session, req["id"], users["bob"])

    with pytest.raises(AlreadyExists):
        await friend_service.send_friend_request(db_session, users["bob"], users["alice"])


@pytest.mark.asyncio
async def test_send_rejected_across_block(db_session, users):
    """Test a block in either direction prevents sending."""
    db_session.add(Block(blocker_id=users["bob"], blocked_id=users["alice"]))
    await db_session.flush()

    with pytest.raises(Blocked):
        await friend_service.send_friend_request(db_session, users["alice"], users["bob"])
    with pytest.raises(Blocked):
        await friend_service.send_friend_request(db_session, users["bob"], users["alice"])


@pytest.mark.asyncio
async def test_active_pair_unique_index(db_session, users):
    """Test the database itself refuses a second active record for a pair."""
    low, high = friend_service.canonical_pair(users["alice"], users["bob"])
    db_session.add(
        FriendRequest(
            requester_id=users["alice"], requestee_id=users["bob"],
            user_low_id=low, user_high_id=high, status="pending",
        )
    )
    await db_session.flush()
    db_session.add(
        FriendRequest(
            requester_id=users["bob"], requestee_id=users["alice"],
            user_low_id=low, user_high_id=high, status="accepted",
        )
    )
    with pytest.raises(IntegrityError):
        await db_session.flush()


# ──────────────────────────────────────────────────────────────
# Accept / Decline / Remove
# ──────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_accept_friend_request(db_session, users):
    """Test accepting a request makes the users friends."""
    req = await friend_service.send_friend_request(db_session, users["alice"], users["bob"])
    result = await friend_service.accept_friend_request(db_session, req["id"], users["bob"])
    assert result["status"] == "accepted"

    status = await friend_service.get_friendship_status(db_session, users["alice"], users["bob"])
    assert status["status"] == "accepted"
    assert status["request"]["id"] == req["id"]


@pytest.mark.asyncio
async def test_requester_cannot_accept(db_session, users):
    """Test that only the requestee can accept."""
    req = await friend_service.send_friend_request(db_session, users["alice"], users["bob"])
    with pytest.raises(Forbidden):
        await friend_service.accept_friend_request(db_session, req["id"], users["alice"])


@pytest.mark.asyncio
async def test_stranger_cannot_accept(db_session, users):
    """Test that a user outside the pair gets Forbidden."""
    req = await friend_service.send_friend_request(db_session, users["alice"], users["bob"])
    with pytest.raises(Forbidden):
        await friend_service.accept_friend_request(db_session, req["id"], users["carol"])


@pytest.mark.asyncio
async def test_accept_missing_request(db_session, users):
    """Test accepting an unknown request id raises NotFound."""
    with pytest.raises(NotFound):
        await friend_service.accept_friend_request(db_session, 9999, users["bob"])


@pytest.mark.asyncio
async def test_accept_declined_request(db_session, users):
    """Test a declined request can no longer be accepted."""
    req = await friend_service.send_friend_request(db_session, users["alice"], users["bob"])
    await friend_service.decline_friend_request(db_session, req["id"], users["bob"])
    with pytest.raises(NotFound):
        await friend_service.accept_friend_request(db_session, req["id"], users["bob"])


@pytest.mark.asyncio
async def test_accept_rejected_across_block(db_session, users):
    """Test a pending request cannot be accepted once either side blocks."""
    req = await friend_service.send_friend_request(db_session, users["alice"], users["bob"])
    db_session.add(Block(blocker_id=users["alice"], blocked_id=users["bob"]))
    await db_session.flush()

    with pytest.raises(Blocked):
        await friend_service.accept_friend_request(db_session, req["id"], users["bob"])

    # Declining is still allowed across the block
    result = await friend_service.decline_friend_request(db_session, req["id"], users["bob"])
    assert result["status"] == "declined"


@pytest.mark.asyncio
async def test_decline_friend_request(db_session, users):
    """Test declining keeps the record as declined history."""
    req = await friend_service.send_friend_request(db_session, users["alice"], users["bob"])
    result = await friend_service.decline_friend_request(db_session, req["id"], users["bob"])
    assert result["status"] == "declined"

    status = await friend_service.get_friendship_status(db_session, users["alice"], users["bob"])
    assert status == {"status": "none", "request": None}

    stored = await db_session.get(FriendRequest, req["id"])
    assert stored.status == FriendRequestStatus.DECLINED.value


@pytest.mark.asyncio
async def test_cancel_by_requester(db_session, users):
    """Test the requester cancelling uses the decline transition."""
    req = await friend_service.send_friend_request(db_session, users["alice"], users["bob"])
    result = await friend_service.decline_friend_request(db_session, req["id"], users["alice"])
    assert result["status"] == "declined"


@pytest.mark.asyncio
async def test_decline_then_re_request(db_session, users):
    """Test that after declining, a new request creates a new record."""
    req = await friend_service.send_friend_request(db_session, users["alice"], users["bob"])
    await friend_service.decline_friend_request(db_session, req["id"], users["bob"])

    new_req = await friend_service.send_friend_request(db_session, users["bob"], users["alice"])
    assert new_req["status"] == "pending"
    assert new_req["id"] != req["id"]


@pytest.mark.asyncio
async def test_remove_requires_accepted(db_session, users):
    """Test removing a pending request raises NotFound."""
    req = await friend_service.send_friend_request(db_session, users["alice"], users["bob"])
    with pytest.raises(NotFound):
        await friend_service.remove_friend(db_session, req["id"], users["alice"])


@pytest.mark.asyncio
async def test_remove_by_stranger(db_session, users):
    """Test a user outside the friendship cannot remove it."""
    req = await friend_service.send_friend_request(db_session, users["alice"], users["bob"])
    await friend_service.accept_friend_request(db_session, req["id"], users["bob"])
    with pytest.raises(Forbidden):
        await friend_service.remove_friend(db_session, req["id"], users["carol"])


@pytest.mark.asyncio
async def test_full_lifecycle_keeps_history(db_session, users):
    """Test send -> accept -> remove -> send again creates a new record."""
    alice, bob = users["alice"], users["bob"]
    req = await friend_service.send_friend_request(db_session, alice, bob)
    await friend_service.accept_friend_request(db_session, req["id"], bob)
    removed = await friend_service.remove_friend(db_session, req["id"], alice)
    assert removed["status"] == "removed"

    again = await friend_service.send_friend_request(db_session, alice, bob)
    assert again["id"] != req["id"]
    assert again["status"] == "pending"

    result = await db_session.execute(
        select(FriendRequest.id, FriendRequest.status).order_by(FriendRequest.id)
    )
    assert [tuple(row) for row in result.all()] == [
        (req["id"], "removed"),
        (again["id"], "pending"),
    ]
    assert await _active_count(db_session, alice, bob) == 1


# ──────────────────────────────────────────────────────────────
# Listings
# ──────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_list_friends(db_session, users):
    """Test listing friends returns accepted friendships only."""
    alice, bob, carol, dave = users["alice"], users["bob"], users["carol"], users["dave"]
    r1 = await friend_service.send_friend_request(db_session, alice, bob)
    await friend_service.accept_friend_request(db_session, r1["id"], bob)
    r2 = await friend_service.send_friend_request(db_session, carol, alice)
    await friend_service.accept_friend_request(db_session, r2["id"], alice)
    await friend_service.send_friend_request(db_session, alice, dave)  # still pending

    friends = await friend_service.list_friends(db_session, alice)
    assert {f["user_id"] for f in friends} == {bob, carol}
    by_user = {f["user_id"]: f for f in friends}
    assert by_user[bob]["display_name"] == "Bob Beta"
    assert by_user[carol]["request_id"] == r2["id"]

    assert [f["user_id"] for f in await friend_service.list_friends(db_session, bob)] == [alice]
    assert await friend_service.list_friends(db_session, dave) == []


@pytest.mark.asyncio
async def test_get_friend_requests_directions(db_session, users):
    """Test incoming/outgoing/both filtering of pending requests."""
    alice, bob, carol = users["alice"], users["bob"], users["carol"]
    out_req = await friend_service.send_friend_request(db_session, alice, bob)
    in_req = await friend_service.send_friend_request(db_session, carol, alice)

    outgoing = await friend_service.get_friend_requests(db_session, alice, "outgoing")
    incoming = await friend_service.get_friend_requests(db_session, alice, "incoming")
    both = await friend_service.get_friend_requests(db_session, alice)

    assert [r["id"] for r in outgoing] == [out_req["id"]]
    assert [r["id"] for r in incoming] == [in_req["id"]]
    assert {r["id"] for r in both} == {out_req["id"], in_req["id"]}


@pytest.mark.asyncio
async def test_get_mutual_friends(db_session, users):
    """Test mutual friends are the intersection of both friend sets."""
    alice, bob, carol, dave = users["alice"], users["bob"], users["carol"], users["dave"]
    for a, b in [(alice, carol), (bob, carol), (alice, dave)]:
        req = await friend_service.send_friend_request(db_session, a, b)
        await friend_service.accept_friend_request(db_session, req["id"], b)

    assert await friend_service.get_mutual_friends(db_session, alice, bob) == [carol]
    assert await friend_service.get_mutual_friends(db_session, bob, dave) == []
