"""Initial schema

Revision ID: 001_initial
Revises:
Create Date: 2026-10-17

"""
from collections.abc import Sequence
from typing import Union

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "variables",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("slug", sa.String(length=100), nullable=False),
        sa.Column("label", sa.String(length=255), nullable=False),
        sa.Column("unit", sa.String(length=50), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_variables_id"), "variables", ["id"], unique=False)
    op.create_index(op.f("ix_variables_slug"), "variables", ["slug"], unique=True)

    op.create_table(
        "variable_logs",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("variable_id", sa.Integer(), nullable=False),
        sa.Column("display_value", sa.String(length=255), nullable=True),
        sa.Column("display_unit", sa.String(length=50), nullable=True),
        sa.Column("source", sa.String(length=20), nullable=True),
        sa.Column("logged_at", sa.DateTime(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("context", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["variable_id"], ["variables.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_variable_logs_id"), "variable_logs", ["id"], unique=False)
    op.create_index(op.f("ix_variable_logs_user_id"), "variable_logs", ["user_id"], unique=False)
    op.create_index(
        op.f("ix_variable_logs_variable_id"), "variable_logs", ["variable_id"], unique=False
    )
    op.create_index(op.f("ix_variable_logs_logged_at"), "variable_logs", ["logged_at"], unique=False)

    op.create_table(
        "routines",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("routine_name", sa.String(length=255), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=True, default=True),
        sa.Column("weekdays", sa.JSON(), nullable=True),
        sa.Column("last_auto_logged", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_routines_id"), "routines", ["id"], unique=False)
    op.create_index(op.f("ix_routines_user_id"), "routines", ["user_id"], unique=False)

    op.create_table(
        "routine_variables",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("routine_id", sa.Integer(), nullable=False),
        sa.Column("variable_id", sa.Integer(), nullable=False),
        sa.Column("default_value", sa.String(length=255), nullable=True),
        sa.Column("default_unit", sa.String(length=50), nullable=True),
        sa.Column("weekdays", sa.JSON(), nullable=True),
        sa.Column("times", sa.JSON(), nullable=True),
        sa.Column("display_order", sa.Integer(), nullable=True, default=0),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["routine_id"], ["routines.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["variable_id"], ["variables.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_routine_variables_id"), "routine_variables", ["id"], unique=False)

    op.create_table(
        "routine_log_history",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("routine_id", sa.Integer(), nullable=False),
        sa.Column("routine_variable_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("variable_id", sa.Integer(), nullable=False),
        sa.Column("log_date", sa.Date(), nullable=False),
        sa.Column("time_of_day", sa.String(length=8), nullable=False),
        sa.Column("auto_logged_value", sa.String(length=255), nullable=True),
        sa.Column("auto_logged_unit", sa.String(length=50), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["routine_id"], ["routines.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(
            ["routine_variable_id"], ["routine_variables.id"], ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(["variable_id"], ["variables.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "routine_variable_id", "log_date", "time_of_day", name="uq_routine_log_history_slot"
        ),
    )
    op.create_index(op.f("ix_routine_log_history_id"), "routine_log_history", ["id"], unique=False)
    op.create_index(
        op.f("ix_routine_log_history_user_id"), "routine_log_history", ["user_id"], unique=False
    )
    op.create_index(
        op.f("ix_routine_log_history_log_date"), "routine_log_history", ["log_date"], unique=False
    )


def downgrade() -> None:
    op.drop_table("routine_log_history")
    op.drop_table("routine_variables")
    op.drop_table("routines")
    op.drop_table("variable_logs")
    op.drop_table("variables")
