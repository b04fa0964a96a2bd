"""Initial schema: exercises, workouts, workout_exercises, sets, history.

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "exercises",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("category", sa.String(length=50), nullable=False),
        sa.Column("equipment", sa.JSON(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_exercises"),
    )
    op.create_index(op.f("ix_exercises_category"), "exercises", ["category"], unique=False)
    op.create_index("uq_exercises_name_lower", "exercises", [sa.text("lower(name)")], unique=True)

    op.create_table(
        "workouts",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("source", sa.String(length=20), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_workouts"),
    )
    op.create_index("ix_workouts_created_at_id", "workouts", ["created_at", "id"], unique=False)

    op.create_table(
        "workout_exercises",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("workout_id", sa.Uuid(), nullable=False),
        sa.Column("exercise_id", sa.Uuid(), nullable=False),
        sa.Column("order_index", sa.Integer(), nullable=False),
        sa.Column("target_sets", sa.Integer(), nullable=True),
        sa.Column("target_reps", sa.Integer(), nullable=True),
        sa.Column("target_weight", sa.Numeric(precision=8, scale=2), nullable=True),
        sa.ForeignKeyConstraint(
            ["workout_id"], ["workouts.id"], name="fk_workout_exercises_workout_id_workouts", ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(
            ["exercise_id"], ["exercises.id"], name="fk_workout_exercises_exercise_id_exercises", ondelete="RESTRICT"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_workout_exercises"),
        sa.UniqueConstraint("workout_id", "order_index", name="uq_workout_exercises_order"),
    )
    op.create_index("ix_workout_exercises_workout_id", "workout_exercises", ["workout_id"], unique=False)
    op.create_index("ix_workout_exercises_exercise_id", "workout_exercises", ["exercise_id"], unique=False)

    op.create_table(
        "sets",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("workout_exercise_id", sa.Uuid(), nullable=False),
        sa.Column("performed_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("reps", sa.Integer(), nullable=False),
        sa.Column("weight", sa.Numeric(precision=8, scale=2), nullable=True),
        sa.Column("rpe", sa.Numeric(precision=3, scale=1), nullable=True),
        sa.Column("rest_seconds", sa.Integer(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("reps >= 0", name="ck_sets_reps"),
        sa.CheckConstraint("weight >= 0", name="ck_sets_weight"),
        sa.CheckConstraint("rpe >= 0 AND rpe <= 10", name="ck_sets_rpe"),
        sa.CheckConstraint("rest_seconds >= 0", name="ck_sets_rest"),
        sa.ForeignKeyConstraint(
            ["workout_exercise_id"], ["workout_exercises.id"], name="fk_sets_workout_exercise_id_workout_exercises", ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_sets"),
    )
    op.create_index(
        "ix_sets_workout_exercise_created", "sets", ["workout_exercise_id", "created_at", "id"], unique=False
    )

    op.create_table(
        "history",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("workout_id", sa.Uuid(), nullable=True),
        sa.Column("performed_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("duration_seconds", sa.Integer(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("duration_seconds >= 0", name="ck_history_duration"),
        sa.ForeignKeyConstraint(
            ["workout_id"], ["workouts.id"], name="fk_history_workout_id_workouts", ondelete="SET NULL"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_history"),
    )
    # Keyset pagination walks (performed_at DESC, id DESC)
    op.create_index("ix_history_performed_at_id", "history", ["performed_at", "id"], unique=False)
    op.create_index("ix_history_workout_id", "history", ["workout_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_history_workout_id", table_name="history")
    op.drop_index("ix_history_performed_at_id", table_name="history")
    op.drop_table("history")
    op.drop_index("ix_sets_workout_exercise_created", table_name="sets")
    op.drop_table("sets")
    op.drop_index("ix_workout_exercises_exercise_id", table_name="workout_exercises")
    op.drop_index("ix_workout_exercises_workout_id", table_name="workout_exercises")
    op.drop_table("workout_exercises")
    op.drop_index("ix_workouts_created_at_id", table_name="workouts")
    op.drop_table("workouts")
    op.drop_index("uq_exercises_name_lower", table_name="exercises")
    op.drop_index(op.f("ix_exercises_category"), table_name="exercises")
    op.drop_table("exercises")
