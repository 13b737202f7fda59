from __future__ import annotations
from typing import Optional, Any
import datetime as dt

from sqlmodel import Session as DBSession, select

from ..errors import Forbidden, NotFound
from ..models import Exercise, WorkoutExercise, WorkoutSession


def ensure_owner(obj: Any, user_id: int, what: str = "resource") -> None:
    if not obj or getattr(obj, "user_id", None) != user_id:
        raise NotFound(what)


def get_owned_workout(db: DBSession, user_id: int, workout_id: int) -> WorkoutSession:
    """Return the caller's workout; other users' workouts look missing."""
    w = db.get(WorkoutSession, workout_id)
    ensure_owner(w, user_id, "workout")
    return w  # type: ignore


def get_owned_workout_exercise(
    db: DBSession, user_id: int, workout_id: int, workout_exercise_id: int
) -> tuple[WorkoutSession, WorkoutExercise, Optional[Exercise]]:
    w = get_owned_workout(db, user_id, workout_id)
    we = db.exec(
        select(WorkoutExercise)
        .where(WorkoutExercise.id == workout_exercise_id)
        .where(WorkoutExercise.workout_session_id == workout_id)
    ).first()
    if not we:
        raise NotFound("workout exercise")
    return w, we, db.get(Exercise, we.exercise_id)


def get_mutable_exercise(db: DBSession, user_id: int, exercise_id: int) -> Exercise:
    """Custom exercise owned by the caller, or Forbidden for anything else that exists."""
    ex = db.get(Exercise, exercise_id)
    if not ex or ex.deleted_at is not None:
        raise NotFound("exercise")
    if not ex.is_custom:
        raise Forbidden("Library exercises cannot be modified or deleted")
    if ex.user_id != user_id:
        raise Forbidden("You do not have permission to modify this exercise")
    return ex


def get_usable_exercise(db: DBSession, user_id: int, exercise_id: int) -> Optional[Exercise]:
    ex = db.get(Exercise, exercise_id)
    if not ex or ex.deleted_at is not None:
        return None
    if ex.is_custom and ex.user_id != user_id:
        return None
    return ex


def normalize_whitespace(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    compact = " ".join(value.strip().split())
    return compact or None


def now_utc() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)
