"""Initial Locova schema

Revision ID: 0a5c2e7d9b14
Revises:
Create Date: 2026-10-19 12:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0a5c2e7d9b14"
down_revision = None
branch_labels = None
depends_on = None


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at", sa.DateTime(timezone=True), server_default=sa.func.now()
    )


def upgrade() -> None:
    op.create_table(
        "user_profiles",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("display_name", sa.String(60), nullable=True),
        sa.Column("avatar_url", sa.Text(), nullable=True),
        sa.Column("push_token", sa.String(255), nullable=True),
        _created_at(),
        sa.CheckConstraint("points >= 0", name="ck_user_profiles_points_nonneg"),
    )
    op.create_index("ix_user_profiles_points_desc", "user_profiles", ["points"])

    op.create_table(
        "trends",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("title", sa.String(120), nullable=False),
        sa.Column("category", sa.String(40), nullable=False),
        sa.Column("location", sa.String(120), nullable=False),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.Column(
            "user_id",
            sa.String(36),
            sa.ForeignKey("user_profiles.id", ondelete="SET NULL"),
            nullable=True,
        ),
        _created_at(),
        sa.Column("like_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("comment_count", sa.Integer(), nullable=False, server_default="0"),
        sa.CheckConstraint(
            "(latitude IS NULL AND longitude IS NULL) OR "
            "(latitude IS NOT NULL AND longitude IS NOT NULL)",
            name="ck_trends_coordinates_paired",
        ),
    )
    op.create_index("ix_trends_created_at", "trends", ["created_at"])
    op.create_index("ix_trends_lat_lng", "trends", ["latitude", "longitude"])

    op.create_table(
        "trend_comments",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "trend_id",
            sa.String(36),
            sa.ForeignKey("trends.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "user_id",
            sa.String(36),
            sa.ForeignKey("user_profiles.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("comment", sa.Text(), nullable=False),
        _created_at(),
        sa.Column("like_count", sa.Integer(), nullable=False, server_default="0"),
    )
    op.create_index("ix_trend_comments_trend_id", "trend_comments", ["trend_id"])

    op.create_table(
        "trend_likes",
        sa.Column(
            "trend_id", sa.String(36),
            sa.ForeignKey("trends.id", ondelete="CASCADE"), primary_key=True,
        ),
        sa.Column(
            "user_id", sa.String(36),
            sa.ForeignKey("user_profiles.id", ondelete="CASCADE"), primary_key=True,
        ),
        _created_at(),
    )

    op.create_table(
        "comment_likes",
        sa.Column(
            "comment_id", sa.String(36),
            sa.ForeignKey("trend_comments.id", ondelete="CASCADE"), primary_key=True,
        ),
        sa.Column(
            "user_id", sa.String(36),
            sa.ForeignKey("user_profiles.id", ondelete="CASCADE"), primary_key=True,
        ),
        _created_at(),
    )

    op.create_table(
        "trend_saves",
        sa.Column(
            "trend_id", sa.String(36),
            sa.ForeignKey("trends.id", ondelete="CASCADE"), primary_key=True,
        ),
        sa.Column(
            "user_id", sa.String(36),
            sa.ForeignKey("user_profiles.id", ondelete="CASCADE"), primary_key=True,
        ),
        _created_at(),
    )
    op.create_index("ix_trend_saves_user_id", "trend_saves", ["user_id"])

    op.create_table(
        "reward_ledger",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column("target_id", sa.String(36), nullable=False),
        sa.Column(
            "user_id",
            sa.String(36),
            sa.ForeignKey("user_profiles.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("action", sa.String(20), nullable=False),
        sa.Column("points", sa.Integer(), nullable=False, server_default="0"),
        _created_at(),
        sa.UniqueConstraint(
            "target_id", "user_id", "action",
            name="uq_reward_ledger_target_user_action",
        ),
    )


def downgrade() -> None:
    op.drop_table("reward_ledger")
    op.drop_index("ix_trend_saves_user_id", table_name="trend_saves")
    op.drop_table("trend_saves")
    op.drop_table("comment_likes")
    op.drop_table("trend_likes")
    op.drop_index("ix_trend_comments_trend_id", table_name="trend_comments")
    op.drop_table("trend_comments")
    op.drop_index("ix_trends_lat_lng", table_name="trends")
    op.drop_index("ix_trends_created_at", table_name="trends")
    op.drop_table("trends")
    op.drop_index("ix_user_profiles_points_desc", table_name="user_profiles")
    op.drop_table("user_profiles")
