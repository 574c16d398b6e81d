"""
Friend request state machine.

Every legal move of a FriendRequest is listed in TRANSITIONS together with
the roles allowed to make it. Anything not in the table is rejected, so the
service functions never check statuses by hand.
"""

import enum
from typing import Dict, FrozenSet, NamedTuple, Tuple

from kickabout.database.models import FriendRequest, FriendRequestStatus
from kickabout.services.errors import Forbidden, NotFound
from kickabout.utils.datetime_utils import utcnow


class FriendAction(str, enum.Enum):
    ACCEPT = "accept"
    DECLINE = "decline"
    REMOVE = "remove"
    BLOCK_REMOVAL = "block_removal"


class Role(str, enum.Enum):
    REQUESTER = "requester"
    REQUESTEE = "requestee"
    SYSTEM = "system"


class Transition(NamedTuple):
    target: FriendRequestStatus
    allowed_roles: FrozenSet[Role]


EITHER_PARTY = frozenset({Role.REQUESTER, Role.REQUESTEE})

TRANSITIONS: Dict[Tuple[FriendRequestStatus, FriendAction], Transition] = {
    (FriendRequestStatus.PENDING, FriendAction.ACCEPT): Transition(
        FriendRequestStatus.ACCEPTED, frozenset({Role.REQUESTEE})
    ),
    # Decline by the requestee and cancel by the requester are the same move.
    (FriendRequestStatus.PENDING, FriendAction.DECLINE): Transition(
        FriendRequestStatus.DECLINED, EITHER_PARTY
    ),
    (FriendRequestStatus.ACCEPTED, FriendAction.REMOVE): Transition(
        FriendRequestStatus.REMOVED, EITHER_PARTY
    ),
    (FriendRequestStatus.ACCEPTED, FriendAction.BLOCK_REMOVAL): Transition(
        FriendRequestStatus.REMOVED, frozenset({Role.SYSTEM})
    ),
}

TERMINAL_STATUSES = frozenset({FriendRequestStatus.DECLINED, FriendRequestStatus.REMOVED})


def role_of(friend_request: FriendRequest, user_id: int) -> Role:
    """Return the role user_id plays on the request, or raise Forbidden."""
    if user_id == friend_request.requester_id:
        return Role.REQUESTER
    if user_id == friend_request.requestee_id:
        return Role.REQUESTEE
    raise Forbidden(request_id=friend_request.id, user_id=user_id)


def lookup(status: FriendRequestStatus, action: FriendAction):
    """Return the Transition for (status, action), or None if illegal."""
    return TRANSITIONS.get((FriendRequestStatus(status), action))


def apply_transition(
    friend_request: FriendRequest, action: FriendAction, role: Role
) -> FriendRequestStatus:
    """
    Move friend_request along the transition table.

    Args:
        friend_request: Record to transition (mutated in place)
        action: Requested action
        role: Role of whoever is acting

    Returns:
        The new status

    Raises:
        NotFound: No record in a state this action applies to
        Forbidden: The role may not perform this action
    """
    transition = lookup(friend_request.status, action)
    if transition is None:
        raise NotFound(
            request_id=friend_request.id,
            status=friend_request.status,
            action=action.value,
        )
    if role not in transition.allowed_roles:
        raise Forbidden(request_id=friend_request.id, action=action.value, role=role.value)

    friend_request.status = transition.target.value
    friend_request.updated_at = utcnow()
    return transition.target
