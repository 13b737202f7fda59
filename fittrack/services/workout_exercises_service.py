from __future__ import annotations
from typing import List
import logging

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session as DBSession, select, delete

from ..errors import Conflict, ValidationFailed
from ..models import WorkoutExercise, WorkoutSet
from ..schemas import WorkoutExerciseCreate, WorkoutExerciseRead, WorkoutExerciseUpdate
from .common import get_owned_workout, get_owned_workout_exercise, get_usable_exercise
from .positions import ensure_order_index_free, resolve_order_index
from .workouts_service import build_exercise_reads

logger = logging.getLogger(__name__)


def _commit_position(db: DBSession, user_id: int, workout_id: int) -> None:
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.warning(
            "Order index collision rejected by storage (user_id=%s, workout_id=%s)", user_id, workout_id
        )
        raise Conflict("That position in the workout was taken by another request")


def add_exercise(
    db: DBSession, user_id: int, workout_id: int, payload: WorkoutExerciseCreate
) -> WorkoutExerciseRead:
    get_owned_workout(db, user_id, workout_id)
    ex = get_usable_exercise(db, user_id, payload.exercise_id)
    if ex is None:
        raise ValidationFailed(
            "The requested exercise does not exist or you do not have permission to use it",
            field="exercise_id",
        )

    we = WorkoutExercise(
        workout_session_id=workout_id,
        exercise_id=ex.id,
        order_index=resolve_order_index(db, workout_id, payload.order_index),
        notes=(payload.notes or None),
    )
    db.add(we)
    _commit_position(db, user_id, workout_id)
    db.refresh(we)
    return build_exercise_reads(db, [we])[0]


def list_exercises(db: DBSession, user_id: int, workout_id: int) -> List[WorkoutExerciseRead]:
    get_owned_workout(db, user_id, workout_id)
    rows = db.exec(
        select(WorkoutExercise).where(WorkoutExercise.workout_session_id == workout_id)
    ).all()
    return build_exercise_reads(db, list(rows))


def update_exercise(
    db: DBSession,
    user_id: int,
    workout_id: int,
    workout_exercise_id: int,
    payload: WorkoutExerciseUpdate,
) -> WorkoutExerciseRead:
    _, we, _ = get_owned_workout_exercise(db, user_id, workout_id, workout_exercise_id)
    data = payload.supplied()

    if "order_index" in data and data["order_index"] != we.order_index:
        ensure_order_index_free(db, workout_id, data["order_index"], exclude_id=we.id)
        we.order_index = data["order_index"]
    if "notes" in data:
        we.notes = data["notes"] or None

    db.add(we)
    _commit_position(db, user_id, workout_id)
    db.refresh(we)
    return build_exercise_reads(db, [we])[0]


def remove_exercise(db: DBSession, user_id: int, workout_id: int, workout_exercise_id: int) -> None:
    get_owned_workout_exercise(db, user_id, workout_id, workout_exercise_id)
    db.exec(delete(WorkoutSet).where(WorkoutSet.workout_exercise_id == workout_exercise_id))
    db.exec(delete(WorkoutExercise).where(WorkoutExercise.id == workout_exercise_id))
    db.commit()
