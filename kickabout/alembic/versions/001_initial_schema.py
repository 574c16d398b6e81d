"""initial_schema

Revision ID: 001
Revises:
Create Date: 2026-10-17 00:00:00.000000

Users, auth tokens, profiles, matches and participants, plus the social
graph (friend_requests, blocks) and the rating ledger (player_ratings).
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ACTIVE_STATUS_SQL = "status IN ('pending', 'accepted')"
GRADE_COLUMNS = ("speed", "defense", "offense", "passing", "shooting", "dribbling")


def _created_at():
    return sa.Column(
        "created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True
    )


def upgrade() -> None:
    """Create all tables with indexes and constraints."""
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "auth_tokens",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("token_hash", sa.String(64), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("token_hash"),
    )
    op.create_index("idx_auth_tokens_user", "auth_tokens", ["user_id"])

    op.create_table(
        "profiles",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("display_name", sa.String(), nullable=False),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.Column("favorite_position", sa.String(), nullable=True),
        sa.Column("skill_level", sa.String(), nullable=True),
        sa.Column("country", sa.String(), nullable=True),
        sa.Column("profile_image_url", sa.String(), nullable=True),
        *[
            sa.Column(name, sa.Float(), nullable=False, server_default="0")
            for name in GRADE_COLUMNS + ("overall_score",)
        ],
        sa.Column("ratings_count", sa.Integer(), nullable=False, server_default="0"),
        _created_at(),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True
        ),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id"),
    )

    op.create_table(
        "matches",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("title", sa.String(), nullable=True),
        sa.Column("created_by", sa.Integer(), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(["created_by"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "match_participants",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("match_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(["match_id"], ["matches.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("match_id", "user_id", name="uq_match_participants_match_user"),
    )
    op.create_index("idx_match_participants_match_id", "match_participants", ["match_id"])

    op.create_table(
        "friend_requests",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("requester_id", sa.Integer(), nullable=False),
        sa.Column("requestee_id", sa.Integer(), nullable=False),
        sa.Column("user_low_id", sa.Integer(), nullable=False),
        sa.Column("user_high_id", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        _created_at(),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True
        ),
        sa.ForeignKeyConstraint(["requester_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["requestee_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("requester_id <> requestee_id", name="ck_friend_requests_not_self"),
        sa.CheckConstraint("user_low_id < user_high_id", name="ck_friend_requests_canonical_pair"),
        sa.CheckConstraint(
            "status IN ('pending', 'accepted', 'declined', 'removed')",
            name="ck_friend_requests_status",
        ),
    )
    # One active (pending/accepted) request per unordered pair
    op.create_index(
        "uq_friend_requests_active_pair",
        "friend_requests",
        ["user_low_id", "user_high_id"],
        unique=True,
        postgresql_where=sa.text(ACTIVE_STATUS_SQL),
    )
    op.create_index(
        "idx_friend_requests_requestee_status", "friend_requests", ["requestee_id", "status"]
    )
    op.create_index(
        "idx_friend_requests_requester_status", "friend_requests", ["requester_id", "status"]
    )

    op.create_table(
        "blocks",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("blocker_id", sa.Integer(), nullable=False),
        sa.Column("blocked_id", sa.Integer(), nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(["blocker_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["blocked_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("blocker_id", "blocked_id", name="uq_blocks_blocker_blocked"),
        sa.CheckConstraint("blocker_id <> blocked_id", name="ck_blocks_not_self"),
    )
    op.create_index("idx_blocks_blocked", "blocks", ["blocked_id"])

    op.create_table(
        "player_ratings",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("match_id", sa.Integer(), nullable=False),
        sa.Column("rater_id", sa.Integer(), nullable=False),
        sa.Column("rated_id", sa.Integer(), nullable=False),
        *[sa.Column(name, sa.String(1), nullable=True) for name in GRADE_COLUMNS],
        sa.Column("suggestion", sa.Text(), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(["match_id"], ["matches.id"]),
        sa.ForeignKeyConstraint(["rater_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["rated_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "match_id", "rater_id", "rated_id", name="uq_player_ratings_match_rater_rated"
        ),
        sa.CheckConstraint("rater_id <> rated_id", name="ck_player_ratings_not_self"),
    )
    op.create_index("idx_player_ratings_rated", "player_ratings", ["rated_id"])


def downgrade() -> None:
    """Drop all tables."""
    op.drop_index("idx_player_ratings_rated", table_name="player_ratings")
    op.drop_table("player_ratings")
    op.drop_index("idx_blocks_blocked", table_name="blocks")
    op.drop_table("blocks")
    op.drop_index("idx_friend_requests_requester_status", table_name="friend_requests")
    op.drop_index("idx_friend_requests_requestee_status", table_name="friend_requests")
    op.drop_index("uq_friend_requests_active_pair", table_name="friend_requests")
    op.drop_table("friend_requests")
    op.drop_index("idx_match_participants_match_id", table_name="match_participants")
    op.drop_table("match_participants")
    op.drop_table("matches")
    op.drop_table("profiles")
    op.drop_index("idx_auth_tokens_user", table_name="auth_tokens")
    op.drop_table("auth_tokens")
    op.drop_table("users")
