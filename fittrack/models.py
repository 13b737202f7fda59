from __future__ import annotations
from typing import Optional
import datetime as dt
from enum import Enum
from sqlalchemy import Index, UniqueConstraint, func
from sqlmodel import SQLModel, Field


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


# ---------- Enums ----------
class ExerciseCategory(str, Enum):
    push = "Push"
    pull = "Pull"
    legs = "Legs"
    core = "Core"
    cardio = "Cardio"


class ExerciseType(str, Enum):
    strength = "strength"
    cardio = "cardio"


class WeightUnit(str, Enum):
    lbs = "lbs"
    kg = "kg"
    bodyweight = "bodyweight"


class DistanceUnit(str, Enum):
    miles = "miles"
    km = "km"


class WorkoutStatus(str, Enum):
    active = "active"
    completed = "completed"
    all = "all"


# ---------- Users ----------
class User(SQLModel, table=True):
    """
    Identity from the OAuth provider. Created on first login and refreshed
    on every later one.
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    google_id: str = Field(index=True, unique=True)
    email: str = Field(index=True, unique=True)
    display_name: str
    profile_picture_url: Optional[str] = None
    preferred_weight_unit: WeightUnit = Field(default=WeightUnit.lbs)
    created_at: dt.datetime = Field(default_factory=_utcnow)
    updated_at: dt.datetime = Field(default_factory=_utcnow)


# ---------- Exercises ----------
class Exercise(SQLModel, table=True):
    """
    Library movements (is_custom=False, no owner) and user-owned custom
    movements. A custom exercise still referenced by workouts is soft-deleted
    via deleted_at so that workout history keeps resolving it.
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    category: ExerciseCategory
    type: ExerciseType
    is_custom: bool = Field(default=False)
    user_id: Optional[int] = Field(default=None, foreign_key="user.id", index=True, ondelete="CASCADE")
    created_at: dt.datetime = Field(default_factory=_utcnow)
    deleted_at: Optional[dt.datetime] = Field(default=None)


# ---------- Workouts ----------
class WorkoutSession(SQLModel, table=True):
    """A single workout attempt. end_time NULL means the workout is active."""
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True, ondelete="CASCADE")
    start_time: dt.datetime = Field(default_factory=_utcnow, index=True)
    end_time: Optional[dt.datetime] = Field(default=None)
    notes: Optional[str] = None
    created_at: dt.datetime = Field(default_factory=_utcnow)
    updated_at: dt.datetime = Field(default_factory=_utcnow)


class WorkoutExercise(SQLModel, table=True):
    __table_args__ = (
        UniqueConstraint("workout_session_id", "order_index", name="uq_workout_exercise_order"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    workout_session_id: int = Field(foreign_key="workoutsession.id", index=True, ondelete="CASCADE")
    # no cascade from Exercise: history survives the exercise going away
    exercise_id: int = Field(foreign_key="exercise.id", index=True, ondelete="RESTRICT")
    order_index: int
    notes: Optional[str] = None
    created_at: dt.datetime = Field(default_factory=_utcnow)


class WorkoutSet(SQLModel, table=True):
    __table_args__ = (
        UniqueConstraint("workout_exercise_id", "set_number", name="uq_workout_set_number"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    workout_exercise_id: int = Field(foreign_key="workoutexercise.id", index=True, ondelete="CASCADE")
    set_number: int
    completed: bool = Field(default=False)

    # strength
    reps: Optional[int] = None
    weight: Optional[float] = None
    weight_unit: Optional[WeightUnit] = None

    # cardio
    duration: Optional[int] = None  # seconds
    distance: Optional[float] = None
    distance_unit: Optional[DistanceUnit] = None

    created_at: dt.datetime = Field(default_factory=_utcnow)


# ---------- Storage-level invariants ----------
# At most one open workout per user.
Index(
    "uq_workout_one_active_per_user",
    WorkoutSession.user_id,
    unique=True,
    sqlite_where=WorkoutSession.end_time.is_(None),
    postgresql_where=WorkoutSession.end_time.is_(None),
)

# Custom exercise names are unique per user, case-insensitively, among live rows.
Index(
    "uq_exercise_custom_name",
    Exercise.user_id,
    func.lower(Exercise.name),
    unique=True,
    sqlite_where=Exercise.is_custom.is_(True) & Exercise.deleted_at.is_(None),
    postgresql_where=Exercise.is_custom.is_(True) & Exercise.deleted_at.is_(None),
)
