"""initial schema

Revision ID: 0001
Revises:
Create Date: 2026-01-05 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

CURRENT_ROW = sa.text("valid_to IS NULL AND op_type != 'DELETE'")

ENTRY_TYPES = (
    "task", "note", "event", "done", "migrated", "cancelled", "question", "answered", "answer",
)


def _enum(*values: str, name: str) -> sa.Enum:
    return sa.Enum(*values, name=name, native_enum=False)


def _header() -> list:
    """row_id, entity_id, version, valid_from, valid_to, op_type."""
    return [
        sa.Column("row_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("entity_id", sa.String(36), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("valid_from", sa.String(32), nullable=False),
        sa.Column("valid_to", sa.String(32), nullable=True),
        sa.Column("op_type", _enum("INSERT", "UPDATE", "DELETE", name="op_type_enum"), nullable=False),
    ]


def _versioned_table(table: str, *columns, current_unique: Union[str, None] = None) -> None:
    op.create_table(
        table,
        *_header(),
        *columns,
        sa.UniqueConstraint("entity_id", "version", name=f"uq_{table}_entity_version"),
    )
    op.create_index(f"ix_{table}_entity_id", table, ["entity_id"])
    op.create_index(f"ix_{table}_entity_valid_to", table, ["entity_id", "valid_to"])
    if current_unique:
        op.create_index(
            f"uq_{table}_current_{current_unique}",
            table,
            [current_unique],
            unique=True,
            sqlite_where=CURRENT_ROW,
        )


def upgrade() -> None:
    # --- entries ---
    _versioned_table(
        "entries",
        sa.Column("type", _enum(*ENTRY_TYPES, name="entry_type_enum"), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column(
            "priority", _enum("none", "low", "medium", "high", name="priority_enum"), nullable=False
        ),
        sa.Column(
            "parent_id",
            sa.Integer(),
            sa.ForeignKey("entries.row_id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("parent_entity_id", sa.String(36), nullable=True),
        sa.Column("depth", sa.Integer(), nullable=False),
        sa.Column("scheduled_date", sa.Date(), nullable=True),
        sa.Column("location", sa.String(256), nullable=True),
        sa.Column("mood", sa.String(256), nullable=True),
        sa.Column("weather", sa.String(256), nullable=True),
        sa.Column("created_at", sa.String(32), nullable=False),
        sa.Column("completed_at", sa.String(32), nullable=True),
        sa.Column("original_created_at", sa.String(32), nullable=True),
        sa.Column("migration_count", sa.Integer(), nullable=False),
        sa.Column("cancelled_from", _enum(*ENTRY_TYPES, name="entry_type_enum"), nullable=True),
    )
    op.create_index("ix_entries_parent_entity_id", "entries", ["parent_entity_id"])
    op.create_index("ix_entries_scheduled_date", "entries", ["scheduled_date"])

    # --- entry_tags / entry_mentions ---
    for table, column in (("entry_tags", "tag"), ("entry_mentions", "mention")):
        op.create_table(
            table,
            sa.Column(
                "entry_id",
                sa.Integer(),
                sa.ForeignKey("entries.row_id", ondelete="CASCADE"),
                primary_key=True,
            ),
            sa.Column(column, sa.String(128), primary_key=True),
        )
        op.create_index(f"ix_{table}_{column}", table, [column])

    # --- day_contexts ---
    _versioned_table(
        "day_contexts",
        sa.Column("day", sa.Date(), nullable=False),
        sa.Column("location", sa.String(256), nullable=True),
        sa.Column("mood", sa.String(256), nullable=True),
        sa.Column("weather", sa.String(256), nullable=True),
        current_unique="day",
    )
    op.create_index("ix_day_contexts_day", "day_contexts", ["day"])

    # --- habits / habit_logs ---
    _versioned_table(
        "habits",
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("goal_per_day", sa.Integer(), nullable=False),
        sa.Column("goal_per_week", sa.Integer(), nullable=True),
        sa.Column("goal_per_month", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.String(32), nullable=False),
        current_unique="name",
    )
    _versioned_table(
        "habit_logs",
        sa.Column(
            "habit_id",
            sa.Integer(),
            sa.ForeignKey("habits.row_id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("habit_entity_id", sa.String(36), nullable=False),
        sa.Column("count", sa.Integer(), nullable=False),
        sa.Column("logged_at", sa.String(32), nullable=False),
    )
    op.create_index("ix_habit_logs_habit_entity_id", "habit_logs", ["habit_entity_id"])
    op.create_index("ix_habit_logs_logged_at", "habit_logs", ["logged_at"])

    # --- lists / list_items ---
    _versioned_table(
        "lists",
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("created_at", sa.String(32), nullable=False),
        current_unique="name",
    )
    _versioned_table(
        "list_items",
        sa.Column("list_entity_id", sa.String(36), nullable=False),
        sa.Column(
            "type", _enum("task", "done", "cancelled", name="list_item_type_enum"), nullable=False
        ),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("created_at", sa.String(32), nullable=False),
    )
    op.create_index("ix_list_items_list_entity_id", "list_items", ["list_entity_id"])

    # --- goals ---
    _versioned_table(
        "goals",
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("month", sa.String(7), nullable=False),
        sa.Column(
            "status", _enum("active", "done", "migrated", name="goal_status_enum"), nullable=False
        ),
        sa.Column("migrated_to", sa.String(7), nullable=True),
        sa.Column("created_at", sa.String(32), nullable=False),
    )
    op.create_index("ix_goals_month", "goals", ["month"])

    # --- summaries ---
    _versioned_table(
        "summaries",
        sa.Column(
            "horizon",
            _enum("daily", "weekly", "quarterly", "annual", name="summary_horizon_enum"),
            nullable=False,
        ),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("created_at", sa.String(32), nullable=False),
    )


def downgrade() -> None:
    for table in (
        "summaries",
        "goals",
        "list_items",
        "lists",
        "habit_logs",
        "habits",
        "day_contexts",
        "entry_mentions",
        "entry_tags",
        "entries",
    ):
        op.drop_table(table)
