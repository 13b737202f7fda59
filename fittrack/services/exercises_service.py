from __future__ import annotations
from typing import List, Optional
import logging

from sqlalchemy import case, func, or_
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session as DBSession, select

from ..errors import Conflict, NotFound, ValidationFailed
from ..models import Exercise, ExerciseCategory, ExerciseType, WorkoutExercise, WorkoutSession
from ..schemas import (
    ExerciseCreate,
    ExerciseRead,
    ExerciseUpdate,
    ExerciseUsage,
    ExerciseUsageWorkout,
)
from .common import get_mutable_exercise, get_usable_exercise, normalize_whitespace, now_utc

logger = logging.getLogger(__name__)

DUPLICATE_MESSAGE = "You already have a custom exercise with this name"

# Push, Pull, Legs, Core, Cardio as declared
_CATEGORY_ORDER = case(
    *[(Exercise.category == c, i) for i, c in enumerate(ExerciseCategory)],
    else_=len(ExerciseCategory),
)


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _is_referenced(db: DBSession, exercise_id: int) -> bool:
    return db.exec(
        select(WorkoutExercise.id).where(WorkoutExercise.exercise_id == exercise_id)
    ).first() is not None


def _find_custom_by_name(
    db: DBSession, user_id: int, name: str, exclude_id: Optional[int] = None
) -> Optional[Exercise]:
    stmt = (
        select(Exercise)
        .where(Exercise.user_id == user_id)
        .where(Exercise.is_custom == True)  # noqa: E712
        .where(Exercise.deleted_at.is_(None))
        .where(func.lower(Exercise.name) == name.lower())
    )
    if exclude_id is not None:
        stmt = stmt.where(Exercise.id != exclude_id)
    return db.exec(stmt).first()


def _commit_or_conflict(db: DBSession, user_id: int) -> None:
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.warning("Duplicate custom exercise name rejected by storage (user_id=%s)", user_id)
        raise Conflict(DUPLICATE_MESSAGE)


def list_exercises(
    db: DBSession,
    user_id: int,
    category: Optional[ExerciseCategory],
    type: Optional[ExerciseType],
    search: Optional[str],
) -> List[Exercise]:
    stmt = select(Exercise).where(
        or_(
            Exercise.is_custom == False,  # noqa: E712
            Exercise.user_id == user_id,
        )
    ).where(Exercise.deleted_at.is_(None))
    if category is not None:
        stmt = stmt.where(Exercise.category == category)
    if type is not None:
        stmt = stmt.where(Exercise.type == type)
    if search:
        pattern = f"%{_escape_like(search.lower())}%"
        stmt = stmt.where(func.lower(Exercise.name).like(pattern, escape="\\"))
    stmt = stmt.order_by(_CATEGORY_ORDER, Exercise.name.asc())
    return db.exec(stmt).all()


def get_exercise(db: DBSession, user_id: int, exercise_id: int) -> Exercise:
    ex = get_usable_exercise(db, user_id, exercise_id)
    if ex is None:
        raise NotFound("exercise")
    return ex


def create_exercise(db: DBSession, user_id: int, payload: ExerciseCreate) -> Exercise:
    name = normalize_whitespace(payload.name)
    if not name:
        raise ValidationFailed("Exercise name is required", field="name")

    if _find_custom_by_name(db, user_id, name):
        raise Conflict(DUPLICATE_MESSAGE)

    ex = Exercise(
        name=name,
        category=payload.category,
        type=payload.type,
        is_custom=True,
        user_id=user_id,
    )
    db.add(ex)
    _commit_or_conflict(db, user_id)
    db.refresh(ex)
    logger.info("Custom exercise %s created (user_id=%s)", ex.id, user_id)
    return ex


def update_exercise(
    db: DBSession, user_id: int, exercise_id: int, payload: ExerciseUpdate
) -> Exercise:
    ex = get_mutable_exercise(db, user_id, exercise_id)

    if payload.name is not None:
        new_name = normalize_whitespace(payload.name)
        if not new_name:
            raise ValidationFailed("Exercise name cannot be empty", field="name")
        if _find_custom_by_name(db, user_id, new_name, exclude_id=ex.id):
            raise Conflict(DUPLICATE_MESSAGE)
        ex.name = new_name
    if payload.category is not None:
        ex.category = payload.category
    if payload.type is not None and payload.type != ex.type:
        # logged sets carry the field group of the current type
        if _is_referenced(db, ex.id):
            raise ValidationFailed(
                "Exercise type cannot change while workouts use this exercise", field="type"
            )
        ex.type = payload.type

    db.add(ex)
    _commit_or_conflict(db, user_id)
    db.refresh(ex)
    return ex


def delete_exercise(db: DBSession, user_id: int, exercise_id: int) -> None:
    """Remove a custom exercise.

    Unreferenced exercises are deleted outright. Exercises that workouts still
    point at are soft-deleted: they vanish from listings and cannot be added to
    new workouts, but history keeps resolving them.
    """
    ex = get_mutable_exercise(db, user_id, exercise_id)

    if _is_referenced(db, ex.id):
        ex.deleted_at = now_utc()
        db.add(ex)
        logger.info("Custom exercise %s soft-deleted, still referenced (user_id=%s)", ex.id, user_id)
    else:
        db.delete(ex)
        logger.info("Custom exercise %s deleted (user_id=%s)", exercise_id, user_id)
    db.commit()


def get_exercise_usage(db: DBSession, user_id: int, exercise_id: int) -> ExerciseUsage:
    ex = get_exercise(db, user_id, exercise_id)

    rows = db.exec(
        select(WorkoutSession)
        .where(WorkoutSession.user_id == user_id)
        .join(WorkoutExercise, WorkoutExercise.workout_session_id == WorkoutSession.id)
        .where(WorkoutExercise.exercise_id == exercise_id)
        .order_by(WorkoutSession.start_time.desc())
        .distinct()
    ).all()

    return ExerciseUsage(
        exercise=ExerciseRead.model_validate(ex),
        workouts=[
            ExerciseUsageWorkout(id=w.id, start_time=w.start_time, end_time=w.end_time)
            for w in rows
        ],
        counts={"workouts": len(rows)},
    )
