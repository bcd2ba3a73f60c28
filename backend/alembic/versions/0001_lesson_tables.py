"""lesson tables

Revision ID: 0001
Revises:
Create Date: 2026-10-19 00:00:00

"""
from alembic import op
import sqlalchemy as sa


revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("surname", sa.Text()),
        sa.Column("email", sa.Text()),
        sa.Column("phone", sa.Text()),
        sa.Column("is_admin", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.current_timestamp()),
    )

    op.create_table(
        "lesson_availability_rules",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("days_of_week", sa.Text(), nullable=False, server_default=sa.text("'[]'")),
        sa.Column("time_start", sa.Text(), nullable=False),
        sa.Column("time_end", sa.Text(), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=False),
        sa.Column("location", sa.Text(), nullable=False, server_default=sa.text("'Soses'")),
        sa.Column("active", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("valid_from", sa.Date()),
        sa.Column("valid_to", sa.Date()),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.current_timestamp()),
    )

    op.create_table(
        "lesson_availability_overrides",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("kind", sa.Text(), nullable=False, server_default=sa.text("'closed'")),
        sa.Column("time_start", sa.Text()),
        sa.Column("time_end", sa.Text()),
        sa.Column("reason", sa.Text()),
        sa.Column("location", sa.Text()),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.current_timestamp()),
    )
    op.create_index(
        "ix_lesson_availability_overrides_date", "lesson_availability_overrides", ["date"]
    )

    op.create_table(
        "lesson_slot_batches",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("valid_from", sa.Date(), nullable=False),
        sa.Column("valid_to", sa.Date(), nullable=False),
        sa.Column("days_of_week", sa.Text(), nullable=False, server_default=sa.text("'[]'")),
        sa.Column("base_time_start", sa.Text(), nullable=False),
        sa.Column("location", sa.Text(), nullable=False),
        sa.Column("timezone", sa.Text(), nullable=False),
        sa.Column("template", sa.Text(), nullable=False, server_default=sa.text("'{}'")),
        sa.Column("title", sa.Text()),
        sa.Column("options", sa.Text()),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.current_timestamp()),
    )

    op.create_table(
        "lesson_slots",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("start_at", sa.DateTime(), nullable=False),
        sa.Column("end_at", sa.DateTime(), nullable=False),
        sa.Column("max_capacity", sa.Integer(), nullable=False, server_default=sa.text("4")),
        sa.Column("location", sa.Text(), nullable=False, server_default=sa.text("'Soses'")),
        sa.Column("status", sa.Text(), nullable=False, server_default=sa.text("'open'")),
        sa.Column("joinable", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("locked_by_booking_id", sa.Integer()),
        sa.Column(
            "created_from_rule_id",
            sa.Integer(),
            sa.ForeignKey("lesson_availability_rules.id", ondelete="SET NULL"),
        ),
        sa.Column(
            "created_from_batch_id",
            sa.Integer(),
            sa.ForeignKey("lesson_slot_batches.id", ondelete="SET NULL"),
        ),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.current_timestamp()),
    )
    op.create_index("ix_lesson_slots_start_at", "lesson_slots", ["start_at"])
    op.create_index("ix_lesson_slots_location", "lesson_slots", ["location"])

    op.create_table(
        "lesson_bookings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "slot_id",
            sa.Integer(),
            sa.ForeignKey("lesson_slots.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("group_size", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("allow_fill", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("status", sa.Text(), nullable=False, server_default=sa.text("'pending'")),
        sa.Column("observations", sa.Text()),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.current_timestamp()),
    )
    op.create_index("ix_lesson_bookings_slot_id", "lesson_bookings", ["slot_id"])

    op.create_table(
        "lesson_booking_participants",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "booking_id",
            sa.Integer(),
            sa.ForeignKey("lesson_bookings.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("is_primary", sa.Integer(), nullable=False, server_default=sa.text("0")),
    )


def downgrade() -> None:
    op.drop_table("lesson_booking_participants")
    op.drop_index("ix_lesson_bookings_slot_id", table_name="lesson_bookings")
    op.drop_table("lesson_bookings")
    op.drop_index("ix_lesson_slots_location", table_name="lesson_slots")
    op.drop_index("ix_lesson_slots_start_at", table_name="lesson_slots")
    op.drop_table("lesson_slots")
    op.drop_table("lesson_slot_batches")
    op.drop_index("ix_lesson_availability_overrides_date", table_name="lesson_availability_overrides")
    op.drop_table("lesson_availability_overrides")
    op.drop_table("lesson_availability_rules")
    op.drop_table("users")
