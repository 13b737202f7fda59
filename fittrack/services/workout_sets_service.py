from __future__ import annotations
import logging

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session as DBSession, select

from ..errors import Conflict, NotFound
from ..models import ExerciseType, WorkoutSet
from ..schemas import WorkoutSetCreate, WorkoutSetUpdate
from .common import get_owned_workout_exercise
from .positions import ensure_set_number_free, resolve_set_number
from .set_validation import validate_new_set, validate_set_update

logger = logging.getLogger(__name__)


def _exercise_type(ex) -> ExerciseType:
    # the exercise row outlives soft deletion, so this only misses on broken data
    if ex is None:
        raise NotFound("exercise")
    return ex.type


def _commit_set(db: DBSession, user_id: int, workout_exercise_id: int) -> None:
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.warning(
            "Set number collision rejected by storage (user_id=%s, workout_exercise_id=%s)",
            user_id,
            workout_exercise_id,
        )
        raise Conflict("That set number was taken by another request")


def _get_set(db: DBSession, workout_exercise_id: int, set_id: int) -> WorkoutSet:
    s = db.exec(
        select(WorkoutSet)
        .where(WorkoutSet.id == set_id)
        .where(WorkoutSet.workout_exercise_id == workout_exercise_id)
    ).first()
    if not s:
        raise NotFound("set")
    return s


def add_set(
    db: DBSession,
    user_id: int,
    workout_id: int,
    workout_exercise_id: int,
    payload: WorkoutSetCreate,
) -> WorkoutSet:
    _, we, ex = get_owned_workout_exercise(db, user_id, workout_id, workout_exercise_id)
    fields = validate_new_set(_exercise_type(ex), payload)

    s = WorkoutSet(
        workout_exercise_id=we.id,
        set_number=resolve_set_number(db, we.id, payload.set_number),
        completed=payload.completed,
        **fields,
    )
    db.add(s)
    _commit_set(db, user_id, we.id)
    db.refresh(s)
    return s


def update_set(
    db: DBSession,
    user_id: int,
    workout_id: int,
    workout_exercise_id: int,
    set_id: int,
    payload: WorkoutSetUpdate,
) -> WorkoutSet:
    _, we, ex = get_owned_workout_exercise(db, user_id, workout_id, workout_exercise_id)
    s = _get_set(db, we.id, set_id)
    changes = validate_set_update(_exercise_type(ex), s, payload)

    new_number = changes.get("set_number")
    if new_number is not None and new_number != s.set_number:
        ensure_set_number_free(db, we.id, new_number, exclude_id=s.id)

    for field, value in changes.items():
        setattr(s, field, value)

    db.add(s)
    _commit_set(db, user_id, we.id)
    db.refresh(s)
    return s


def delete_set(
    db: DBSession, user_id: int, workout_id: int, workout_exercise_id: int, set_id: int
) -> None:
    _, we, _ = get_owned_workout_exercise(db, user_id, workout_id, workout_exercise_id)
    s = _get_set(db, we.id, set_id)
    db.delete(s)
    db.commit()
