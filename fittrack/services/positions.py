"""Position assignment for exercises within a workout and sets within an exercise.

Order indexes are 0-based, set numbers 1-based. A caller-chosen position that
is already taken is rejected; existing rows are never shifted. The unique
constraints in ``models`` back these checks up under concurrent requests.
"""
from __future__ import annotations
from typing import Optional

from sqlalchemy import func
from sqlmodel import Session as DBSession, select

from ..errors import ValidationFailed
from ..models import WorkoutExercise, WorkoutSet


def _max_or_none(db: DBSession, stmt) -> Optional[int]:
    cur = db.exec(stmt).first()
    if isinstance(cur, tuple):
        cur = cur[0]
    return cur


def next_order_index(db: DBSession, workout_id: int) -> int:
    cur = _max_or_none(
        db,
        select(func.max(WorkoutExercise.order_index)).where(
            WorkoutExercise.workout_session_id == workout_id
        ),
    )
    return 0 if cur is None else cur + 1


def next_set_number(db: DBSession, workout_exercise_id: int) -> int:
    cur = _max_or_none(
        db,
        select(func.max(WorkoutSet.set_number)).where(
            WorkoutSet.workout_exercise_id == workout_exercise_id
        ),
    )
    return 1 if cur is None else cur + 1


def ensure_order_index_free(
    db: DBSession, workout_id: int, order_index: int, exclude_id: Optional[int] = None
) -> None:
    stmt = (
        select(WorkoutExercise.id)
        .where(WorkoutExercise.workout_session_id == workout_id)
        .where(WorkoutExercise.order_index == order_index)
    )
    if exclude_id is not None:
        stmt = stmt.where(WorkoutExercise.id != exclude_id)
    if db.exec(stmt).first() is not None:
        raise ValidationFailed(
            f"Order index {order_index} already exists in this workout", field="order_index"
        )


def ensure_set_number_free(
    db: DBSession, workout_exercise_id: int, set_number: int, exclude_id: Optional[int] = None
) -> None:
    stmt = (
        select(WorkoutSet.id)
        .where(WorkoutSet.workout_exercise_id == workout_exercise_id)
        .where(WorkoutSet.set_number == set_number)
    )
    if exclude_id is not None:
        stmt = stmt.where(WorkoutSet.id != exclude_id)
    if db.exec(stmt).first() is not None:
        raise ValidationFailed(
            f"Set number {set_number} already exists for this exercise", field="set_number"
        )


def resolve_order_index(db: DBSession, workout_id: int, requested: Optional[int]) -> int:
    if requested is None:
        return next_order_index(db, workout_id)
    ensure_order_index_free(db, workout_id, requested)
    return requested


def resolve_set_number(db: DBSession, workout_exercise_id: int, requested: Optional[int]) -> int:
    if requested is None:
        return next_set_number(db, workout_exercise_id)
    ensure_set_number_free(db, workout_exercise_id, requested)
    return requested
