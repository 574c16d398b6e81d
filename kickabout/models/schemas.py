"""
Pydantic models for API request/response validation.
"""

from typing import Optional, List, Literal
from pydantic import BaseModel, Field

GradeLiteral = Literal["S", "A", "B", "C", "D"]


class FriendRequestCreate(BaseModel):
    """Request to send a friend request."""

    requestee_id: int


class FriendRequestResponse(BaseModel):
    """Friend request."""

    id: int
    requester_id: int
    requestee_id: int
    status: str  # pending, accepted, declined, or removed
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class FriendshipStatusResponse(BaseModel):
    """Active relationship between the current user and another user."""

    status: str  # none, pending, or accepted
    request: Optional[FriendRequestResponse] = None


class FriendResponse(BaseModel):
    """One entry in a friends list."""

    request_id: int
    user_id: int
    display_name: Optional[str] = None
    friends_since: Optional[str] = None


class MutualFriendsResponse(BaseModel):
    user_ids: List[int]


class BlockResponse(BaseModel):
    """Block placed by the current user."""

    id: int
    blocker_id: int
    blocked_id: int
    created_at: Optional[str] = None
    removed_friend_request_id: Optional[int] = None


class BlockStatusResponse(BaseModel):
    status: str  # none, blocked_you, or blocked_by_you


class RatingCreate(BaseModel):
    """Ratings for one player in one match. Omitted attributes are skipped."""

    rated_user_id: int
    speed: Optional[GradeLiteral] = None
    defense: Optional[GradeLiteral] = None
    offense: Optional[GradeLiteral] = None
    passing: Optional[GradeLiteral] = None
    shooting: Optional[GradeLiteral] = None
    dribbling: Optional[GradeLiteral] = None
    suggestion: Optional[str] = Field(default=None, max_length=1000)

    def grades(self) -> dict:
        return self.model_dump(exclude={"rated_user_id", "suggestion"})


class RatingResponse(BaseModel):
    id: int
    match_id: int
    rater_id: int
    rated_id: int
    grades: dict
    suggestion: Optional[str] = None
    created_at: Optional[str] = None


class PlayerToRateResponse(BaseModel):
    user_id: int
    already_rated: bool
    display_name: str
    favorite_position: str


class ProfileAggregateResponse(BaseModel):
    """Derived rating summary for a user."""

    user_id: int
    display_name: str
    speed: float
    defense: float
    offense: float
    passing: float
    shooting: float
    dribbling: float
    overall_score: float
    ratings_count: int
