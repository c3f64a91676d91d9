"""initial schema

Revision ID: 0001
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


_LEVEL_REWARDS = [
    (1, "Eco Starter Badge", "A digital badge for your profile.", "digital"),
    (2, "Reusable Water Bottle", "A branded stainless steel bottle.", "physical"),
    (3, "Plant a Tree", "We plant a tree in your name.", "experience"),
    (4, "Green Commute Voucher", "A public transport or bike-share voucher.", "physical"),
    (5, "Priority Parking for Bikes", "Reserved bike spot for a month.", "privilege"),
    (6, "Sustainable Lunch", "Lunch for two at a local sustainable restaurant.", "experience"),
    (7, "Extra Remote Day", "One additional remote working day.", "privilege"),
    (8, "Eco Gadget Bundle", "Solar charger and reusable kit.", "physical"),
    (9, "Volunteer Day Off", "A paid day to volunteer with an environmental charity.", "privilege"),
    (10, "Sustainability Champion Award", "Recognition at the company all-hands.", "experience"),
]


def upgrade() -> None:
    # --- ENUM types ---
    verification_status_enum = sa.Enum(
        "pending", "approved", "rejected", name="verification_status_enum"
    )
    verification_status_enum.create(op.get_bind(), checkfirst=True)

    point_transaction_type_enum = sa.Enum(
        "earned", "adjusted", name="point_transaction_type_enum"
    )
    point_transaction_type_enum.create(op.get_bind(), checkfirst=True)

    reward_type_enum = sa.Enum(
        "physical", "digital", "experience", "privilege", name="reward_type_enum"
    )
    reward_type_enum.create(op.get_bind(), checkfirst=True)

    claim_status_enum = sa.Enum(
        "pending", "approved", "rejected", "delivered", name="claim_status_enum"
    )
    claim_status_enum.create(op.get_bind(), checkfirst=True)

    # --- users ---
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("first_name", sa.String(128), nullable=False, server_default=""),
        sa.Column("last_name", sa.String(128), nullable=False, server_default=""),
        sa.Column("points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_co2_saved", sa.Numeric(12, 3), nullable=False, server_default="0"),
        sa.Column("is_admin", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
        sa.CheckConstraint("points >= 0", name="ck_users_points_non_negative"),
        sa.CheckConstraint("total_co2_saved >= 0", name="ck_users_co2_non_negative"),
    )
    op.create_index("ix_users_id", "users", ["id"])

    # --- sustainability_actions ---
    op.create_table(
        "sustainability_actions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(256), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("instructions", sa.Text(), nullable=True),
        sa.Column("category", sa.String(64), nullable=False, server_default="general"),
        sa.Column("points_value", sa.Integer(), nullable=False),
        sa.Column("co2_impact", sa.Numeric(12, 3), nullable=False, server_default="0"),
        sa.Column("difficulty_level", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("estimated_time_minutes", sa.Integer(), nullable=True),
        sa.Column("verification_required", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("is_user_created", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("submitted_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("auto_logged_for_submitter", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_sustainability_actions_id", "sustainability_actions", ["id"])
    op.create_index("ix_sustainability_actions_category", "sustainability_actions", ["category"])
    op.create_index("ix_sustainability_actions_is_active", "sustainability_actions", ["is_active"])
    op.create_index("ix_sustainability_actions_submitted_by", "sustainability_actions", ["submitted_by"])

    # --- user_actions ---
    op.create_table(
        "user_actions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("action_id", sa.Integer(), sa.ForeignKey("sustainability_actions.id"), nullable=False),
        sa.Column("points_earned", sa.Integer(), nullable=False),
        sa.Column("co2_saved", sa.Numeric(12, 3), nullable=False, server_default="0"),
        sa.Column("verification_status", sa.Enum(
            "pending", "approved", "rejected",
            name="verification_status_enum", create_type=False,
        ), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("verified_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_user_actions_id", "user_actions", ["id"])
    op.create_index("ix_user_actions_user_id", "user_actions", ["user_id"])
    op.create_index("ix_user_actions_action_id", "user_actions", ["action_id"])
    op.create_index("ix_user_actions_verification_status", "user_actions", ["verification_status"])
    op.create_index(
        "ix_user_actions_user_action_completed",
        "user_actions",
        ["user_id", "action_id", "completed_at"],
    )

    # --- point_transactions ---
    op.create_table(
        "point_transactions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("points", sa.Integer(), nullable=False),
        sa.Column("transaction_type", sa.Enum(
            "earned", "adjusted",
            name="point_transaction_type_enum", create_type=False,
        ), nullable=False),
        sa.Column("reference_type", sa.String(32), nullable=True),
        sa.Column("reference_id", sa.Integer(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("points <> 0", name="ck_point_transactions_nonzero"),
    )
    op.create_index("ix_point_transactions_id", "point_transactions", ["id"])
    op.create_index("ix_point_transactions_user_id", "point_transactions", ["user_id"])

    # --- level_rewards ---
    level_rewards = op.create_table(
        "level_rewards",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("level", sa.Integer(), nullable=False),
        sa.Column("reward_title", sa.String(256), nullable=False),
        sa.Column("reward_description", sa.Text(), nullable=False, server_default=""),
        sa.Column("reward_type", sa.Enum(
            "physical", "digital", "experience", "privilege",
            name="reward_type_enum", create_type=False,
        ), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_level_rewards_id", "level_rewards", ["id"])
    op.create_index("ix_level_rewards_level", "level_rewards", ["level"])

    # --- user_level_rewards ---
    op.create_table(
        "user_level_rewards",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("level", sa.Integer(), nullable=False),
        sa.Column("level_reward_id", sa.Integer(), sa.ForeignKey("level_rewards.id"), nullable=False),
        sa.Column("claim_status", sa.Enum(
            "pending", "approved", "rejected", "delivered",
            name="claim_status_enum", create_type=False,
        ), nullable=False),
        sa.Column("claimed_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("approved_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("admin_notes", sa.Text(), nullable=True),
        sa.Column("user_email", sa.String(255), nullable=False),
        sa.Column("user_name", sa.String(256), nullable=False, server_default=""),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "level_reward_id", name="uq_user_level_reward"),
    )
    op.create_index("ix_user_level_rewards_id", "user_level_rewards", ["id"])
    op.create_index("ix_user_level_rewards_user_id", "user_level_rewards", ["user_id"])
    op.create_index("ix_user_level_rewards_level_reward_id", "user_level_rewards", ["level_reward_id"])
    op.create_index("ix_user_level_rewards_claim_status", "user_level_rewards", ["claim_status"])

    # --- notifications ---
    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("kind", sa.String(64), nullable=False),
        sa.Column("title", sa.String(256), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("payload", sa.Text(), nullable=True),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_notifications_id", "notifications", ["id"])
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])
    op.create_index("ix_notifications_kind", "notifications", ["kind"])

    # --- admin_activity ---
    op.create_table(
        "admin_activity",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("admin_user_id", sa.Integer(), nullable=False),
        sa.Column("action", sa.String(64), nullable=False),
        sa.Column("resource_type", sa.String(64), nullable=False),
        sa.Column("resource_id", sa.Integer(), nullable=True),
        sa.Column("details", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_admin_activity_id", "admin_activity", ["id"])
    op.create_index("ix_admin_activity_admin_user_id", "admin_activity", ["admin_user_id"])

    # --- Seed level rewards ---
    op.bulk_insert(
        level_rewards,
        [
            {
                "level": level,
                "reward_title": title,
                "reward_description": description,
                "reward_type": reward_type,
                "is_active": True,
            }
            for level, title, description, reward_type in _LEVEL_REWARDS
        ],
    )


def downgrade() -> None:
    op.drop_table("admin_activity")
    op.drop_table("notifications")
    op.drop_table("user_level_rewards")
    op.drop_table("level_rewards")
    op.drop_table("point_transactions")
    op.drop_table("user_actions")
    op.drop_table("sustainability_actions")
    op.drop_table("users")

    for enum_name in (
        "claim_status_enum",
        "reward_type_enum",
        "point_transaction_type_enum",
        "verification_status_enum",
    ):
        sa.Enum(name=enum_name).drop(op.get_bind(), checkfirst=True)
