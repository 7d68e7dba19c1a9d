"""Initial schema: accounts, tasks, rewards, requests, keys, meters, streaks.

Revision ID: 001_initial_schema
Revises: None
Create Date: 2026-10-17
"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

revision: str = "001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _user_fk(ondelete: str = "CASCADE") -> sa.ForeignKey:
    return sa.ForeignKey("users.id", ondelete=ondelete)


def upgrade() -> None:
    """Create every table."""
    # --- users ---
    op.create_table(
        "users",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("username", sa.String(64), nullable=False),
        sa.Column("username_normalized", sa.String(64), nullable=False, unique=True),
        sa.Column("full_name", sa.String(128), nullable=True),
        sa.Column("email", sa.String(320), nullable=False, unique=True),
        sa.Column("email_verified", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("password_hash", sa.String(256), nullable=True),
        sa.Column("role", sa.String(16), server_default="user", nullable=False),
        sa.Column("points", sa.Integer(), server_default="0", nullable=False),
        sa.Column("is_blocked", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("avatar_url", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("last_login", sa.DateTime(timezone=True), nullable=True),
        sa.Column("login_count", sa.Integer(), server_default="0", nullable=False),
        sa.CheckConstraint("points >= 0", name="ck_users_points_non_negative"),
        sa.CheckConstraint("role IN ('admin', 'user')", name="ck_users_role"),
    )

    # --- auth tokens ---
    op.create_table(
        "refresh_tokens",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.BigInteger(), _user_fk(), nullable=False),
        sa.Column("token_hash", sa.String(128), nullable=False),
        sa.Column("issued_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("ip_address", sa.String(45), nullable=True),
        sa.Column("user_agent", sa.String(512), nullable=True),
        sa.Column("is_revoked", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("replaced_by", sa.String(36), nullable=True),
    )
    op.create_index("ix_refresh_tokens_user_id", "refresh_tokens", ["user_id"])

    for table, extra in (
        ("email_verification_tokens", []),
        ("password_reset_tokens", [sa.Column("ip_address", sa.String(45), nullable=True)]),
    ):
        op.create_table(
            table,
            sa.Column("id", sa.String(36), primary_key=True),
            sa.Column("user_id", sa.BigInteger(), _user_fk(), nullable=False),
            sa.Column("token_hash", sa.String(128), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("used_at", sa.DateTime(timezone=True), nullable=True),
            *extra,
        )
        op.create_index(f"ix_{table}_token_hash", table, ["token_hash"])

    # --- tasks & rewards ---
    op.create_table(
        "tasks",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), server_default="", nullable=False),
        sa.Column("points_value", sa.Integer(), nullable=False),
        sa.Column("category", sa.String(64), server_default="general", nullable=False),
        sa.Column("recurring", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("status", sa.String(16), server_default="active", nullable=False),
        sa.Column("deadline", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_by", sa.BigInteger(), _user_fk("SET NULL"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("points_value > 0", name="ck_tasks_points_value_positive"),
    )
    op.create_table(
        "rewards",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), server_default="", nullable=False),
        sa.Column("points_cost", sa.Integer(), nullable=False),
        sa.Column("category", sa.String(64), server_default="general", nullable=False),
        sa.Column("requires_approval", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("created_by", sa.BigInteger(), _user_fk("SET NULL"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("points_cost > 0", name="ck_rewards_points_cost_positive"),
    )
    op.create_table(
        "redemptions",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.BigInteger(), _user_fk(), nullable=False),
        sa.Column("reward_id", sa.BigInteger(), sa.ForeignKey("rewards.id", ondelete="SET NULL"), nullable=True),
        sa.Column("reward_title", sa.String(200), nullable=False),
        sa.Column("points_cost", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_redemptions_user_id", "redemptions", ["user_id"])

    # --- requests ---
    op.create_table(
        "point_requests",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.BigInteger(), _user_fk(), nullable=False),
        sa.Column("task_id", sa.BigInteger(), sa.ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False),
        sa.Column("status", sa.String(16), server_default="pending", nullable=False),
        sa.Column("photo_url", sa.Text(), nullable=True),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reviewed_by", sa.BigInteger(), _user_fk("SET NULL"), nullable=True),
        sa.CheckConstraint("status IN ('pending', 'approved', 'rejected')", name="ck_point_requests_status"),
    )
    op.create_index("ix_point_requests_user_status", "point_requests", ["user_id", "status"])
    op.create_table(
        "custom_requests",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.BigInteger(), _user_fk(), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("type", sa.String(16), nullable=False),
        sa.Column("status", sa.String(16), server_default="pending", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reviewed_by", sa.BigInteger(), _user_fk("SET NULL"), nullable=True),
        sa.CheckConstraint("status IN ('pending', 'approved', 'rejected')", name="ck_custom_requests_status"),
    )

    # --- keys ---
    op.create_table(
        "user_keys",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.BigInteger(), _user_fk(), nullable=False),
        sa.Column("key_type", sa.String(16), nullable=False),
        sa.Column("quantity", sa.Integer(), server_default="0", nullable=False),
        sa.UniqueConstraint("user_id", "key_type", name="uq_user_keys_user_type"),
        sa.CheckConstraint("quantity >= 0", name="ck_user_keys_quantity_non_negative"),
    )
    op.create_table(
        "task_key_rewards",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("task_id", sa.BigInteger(), sa.ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False),
        sa.Column("key_type", sa.String(16), nullable=False),
        sa.Column("quantity", sa.Integer(), server_default="1", nullable=False),
        sa.CheckConstraint("quantity > 0", name="ck_task_key_rewards_quantity_positive"),
    )
    op.create_table(
        "reward_key_requirements",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("reward_id", sa.BigInteger(), sa.ForeignKey("rewards.id", ondelete="CASCADE"), nullable=False),
        sa.Column("key_type", sa.String(16), nullable=False),
        sa.Column("quantity", sa.Integer(), server_default="1", nullable=False),
        sa.CheckConstraint("quantity > 0", name="ck_reward_key_requirements_quantity_positive"),
    )

    # --- ledgers ---
    op.create_table(
        "points_history",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.BigInteger(), _user_fk(), nullable=False),
        sa.Column("points", sa.Integer(), nullable=False),
        sa.Column("new_total", sa.Integer(), nullable=False),
        sa.Column("type", sa.String(32), nullable=False),
        sa.Column("reason", sa.String(256), nullable=True),
        sa.Column("task_id", sa.BigInteger(), sa.ForeignKey("tasks.id", ondelete="SET NULL"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_points_history_created_at", "points_history", ["created_at"])
    op.create_table(
        "keys_history",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.BigInteger(), _user_fk(), nullable=False),
        sa.Column("key_type", sa.String(16), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("new_total", sa.Integer(), nullable=False),
        sa.Column("type", sa.String(32), nullable=False),
        sa.Column("reason", sa.String(256), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_keys_history_created_at", "keys_history", ["created_at"])

    # --- meters ---
    op.create_table(
        "user_meters",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.BigInteger(), _user_fk(), nullable=False),
        sa.Column("meter_type", sa.String(32), server_default="standard", nullable=False),
        sa.Column("current_percentage", sa.Integer(), server_default="0", nullable=False),
        sa.Column("target_percentage", sa.Integer(), server_default="100", nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default="true", nullable=False),
        sa.Column("prize_unlocked", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_by", sa.BigInteger(), _user_fk("SET NULL"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "current_percentage >= 0 AND current_percentage <= 100", name="ck_user_meters_percentage_range"
        ),
    )
    # At most one active meter per user.
    op.create_index(
        "ix_user_meters_one_active",
        "user_meters",
        ["user_id"],
        unique=True,
        postgresql_where=sa.text("is_active"),
    )
    op.create_table(
        "meter_history",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column(
            "meter_id", sa.BigInteger(), sa.ForeignKey("user_meters.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("user_id", sa.BigInteger(), _user_fk(), nullable=False),
        sa.Column("old_percentage", sa.Integer(), nullable=False),
        sa.Column("new_percentage", sa.Integer(), nullable=False),
        sa.Column("change_amount", sa.Integer(), nullable=False),
        sa.Column("change_reason", sa.String(256), nullable=True),
        sa.Column("changed_by", sa.BigInteger(), _user_fk("SET NULL"), nullable=True),
        sa.Column("changed_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_meter_history_meter_id", "meter_history", ["meter_id"])

    # --- streaks & prayers ---
    op.create_table(
        "streaks",
        sa.Column("user_id", sa.BigInteger(), _user_fk(), primary_key=True),
        sa.Column("current_streak", sa.Integer(), server_default="0", nullable=False),
        sa.Column("longest_streak", sa.Integer(), server_default="0", nullable=False),
        sa.Column("last_activity_date", sa.Date(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_table(
        "prayer_logs",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.BigInteger(), _user_fk(), nullable=False),
        sa.Column("prayer_date", sa.Date(), nullable=False),
        sa.Column("prayer_name", sa.String(16), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("user_id", "prayer_date", "prayer_name", name="uq_prayer_logs_user_date_name"),
    )


def downgrade() -> None:
    """Drop every table, children first."""
    for table in (
        "prayer_logs",
        "streaks",
        "meter_history",
        "user_meters",
        "keys_history",
        "points_history",
        "reward_key_requirements",
        "task_key_rewards",
        "user_keys",
        "custom_requests",
        "point_requests",
        "redemptions",
        "rewards",
        "tasks",
        "password_reset_tokens",
        "email_verification_tokens",
        "refresh_tokens",
        "users",
    ):
        op.drop_table(table)
