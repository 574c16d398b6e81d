"""
SQLAlchemy ORM models for the Kickabout social graph and rating ledger.
"""

import enum
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    Float,
    DateTime,
    ForeignKey,
    UniqueConstraint,
    CheckConstraint,
    Index,
    event,
    text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from kickabout.database.db import Base


class FriendRequestStatus(str, enum.Enum):
    """Friend request status enum."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    REMOVED = "removed"


ACTIVE_FRIEND_REQUEST_STATUSES = (
    FriendRequestStatus.PENDING.value,
    FriendRequestStatus.ACCEPTED.value,
)

_ACTIVE_STATUS_SQL = "status IN ('pending', 'accepted')"


class Grade(str, enum.Enum):
    """Letter grade a rater gives for one attribute."""

    S = "S"
    A = "A"
    B = "B"
    C = "C"
    D = "D"


# Order matters: it is the column order on both PlayerRating and Profile.
RATED_ATTRIBUTES = ("speed", "defense", "offense", "passing", "shooting", "dribbling")


class User(Base):
    """Opaque identities issued by the identity provider."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    profile = relationship("Profile", back_populates="user", uselist=False)


class AuthToken(Base):
    """Bearer tokens issued by the identity provider (stored hashed)."""

    __tablename__ = "auth_tokens"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    token_hash = Column(String(64), nullable=False, unique=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (Index("idx_auth_tokens_user", "user_id"),)


class Profile(Base):
    """
    Player profiles.

    The attribute columns, overall_score and ratings_count are derived from
    the rating ledger and only written by the aggregation engine.
    """

    __tablename__ = "profiles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    display_name = Column(String, nullable=False)
    bio = Column(Text, nullable=True)
    favorite_position = Column(String, nullable=True)  # goalkeeper, defender, midfielder, forward
    skill_level = Column(String, nullable=True)
    country = Column(String, nullable=True)
    profile_image_url = Column(String, nullable=True)

    speed = Column(Float, default=0.0, nullable=False)
    defense = Column(Float, default=0.0, nullable=False)
    offense = Column(Float, default=0.0, nullable=False)
    passing = Column(Float, default=0.0, nullable=False)
    shooting = Column(Float, default=0.0, nullable=False)
    dribbling = Column(Float, default=0.0, nullable=False)
    overall_score = Column(Float, default=0.0, nullable=False)
    ratings_count = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="profile")


class Match(Base):
    """Informal matches. Owned by the match service; read-only here."""

    __tablename__ = "matches"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String, nullable=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    participants = relationship(
        "MatchParticipant", back_populates="match", cascade="all, delete-orphan"
    )


class MatchParticipant(Base):
    """Users who played in a match."""

    __tablename__ = "match_participants"

    id = Column(Integer, primary_key=True, autoincrement=True)
    match_id = Column(Integer, ForeignKey("matches.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    match = relationship("Match", back_populates="participants")

    __table_args__ = (
        UniqueConstraint("match_id", "user_id", name="uq_match_participants_match_user"),
        Index("idx_match_participants_match_id", "match_id"),
    )


class FriendRequest(Base):
    """
    One directed friendship proposal and its lifecycle.

    user_low_id/user_high_id hold the canonical (unordered) pair so the
    partial unique index can enforce one active record per pair.
    """

    __tablename__ = "friend_requests"

    id = Column(Integer, primary_key=True, autoincrement=True)
    requester_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    requestee_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    user_low_id = Column(Integer, nullable=False)
    user_high_id = Column(Integer, nullable=False)
    status = Column(String(20), default=FriendRequestStatus.PENDING.value, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint("requester_id <> requestee_id", name="ck_friend_requests_not_self"),
        CheckConstraint("user_low_id < user_high_id", name="ck_friend_requests_canonical_pair"),
        CheckConstraint(
            "status IN ('pending', 'accepted', 'declined', 'removed')",
            name="ck_friend_requests_status",
        ),
        Index(
            "uq_friend_requests_active_pair",
            "user_low_id",
            "user_high_id",
            unique=True,
            postgresql_where=text(_ACTIVE_STATUS_SQL),
            sqlite_where=text(_ACTIVE_STATUS_SQL),
        ),
        Index("idx_friend_requests_requestee_status", "requestee_id", "status"),
        Index("idx_friend_requests_requester_status", "requester_id", "status"),
    )


class Block(Base):
    """A user blocking another user. Directed; independent of friend requests."""

    __tablename__ = "blocks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    blocker_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    blocked_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint("blocker_id", "blocked_id", name="uq_blocks_blocker_blocked"),
        CheckConstraint("blocker_id <> blocked_id", name="ck_blocks_not_self"),
        Index("idx_blocks_blocked", "blocked_id"),
    )


class PlayerRating(Base):
    """One peer rating of a player for a match. Insert-only."""

    __tablename__ = "player_ratings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    match_id = Column(Integer, ForeignKey("matches.id"), nullable=False)
    rater_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    rated_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    speed = Column(String(1), nullable=True)
    defense = Column(String(1), nullable=True)
    offense = Column(String(1), nullable=True)
    passing = Column(String(1), nullable=True)
    shooting = Column(String(1), nullable=True)
    dribbling = Column(String(1), nullable=True)
    suggestion = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint(
            "match_id", "rater_id", "rated_id", name="uq_player_ratings_match_rater_rated"
        ),
        CheckConstraint("rater_id <> rated_id", name="ck_player_ratings_not_self"),
        Index("idx_player_ratings_rated", "rated_id"),
    )


class ImmutableRecordError(Exception):
    """Raised when code tries to change or delete a ledger record."""


@event.listens_for(PlayerRating, "before_update")
def _reject_rating_update(mapper, connection, target):
    raise ImmutableRecordError(f"PlayerRating {target.id} is immutable")


@event.listens_for(PlayerRating, "before_delete")
def _reject_rating_delete(mapper, connection, target):
    raise ImmutableRecordError(f"PlayerRating {target.id} cannot be deleted")
