from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator

from .models import (
    DistanceUnit,
    ExerciseCategory,
    ExerciseType,
    WeightUnit,
)


class FrozenInput(BaseModel):
    """Validated, immutable request payload."""
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    def supplied(self) -> dict:
        return self.model_dump(exclude_unset=True)


class ReadModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


def _require_any(model: FrozenInput, fields: tuple, allow_null: bool = True) -> None:
    for name in fields:
        if name in model.model_fields_set and (allow_null or getattr(model, name) is not None):
            return
    raise ValueError(f"At least one field ({', '.join(fields)}) must be provided for update")


# ---------- Users ----------
class UserRead(ReadModel):
    id: int
    email: str
    display_name: str
    profile_picture_url: Optional[str] = None
    preferred_weight_unit: WeightUnit
    created_at: datetime
    updated_at: datetime


class GoogleProfile(BaseModel):
    sub: str
    email: EmailStr
    name: Optional[str] = None
    picture: Optional[str] = None


# ---------- Exercises ----------
class ExerciseCreate(FrozenInput):
    name: str = Field(min_length=1, max_length=100)
    category: ExerciseCategory
    type: ExerciseType


class ExerciseUpdate(FrozenInput):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    category: Optional[ExerciseCategory] = None
    type: Optional[ExerciseType] = None

    @model_validator(mode="after")
    def _at_least_one(self):
        _require_any(self, ("name", "category", "type"), allow_null=False)
        return self


class ExerciseRead(ReadModel):
    id: int
    name: str
    category: ExerciseCategory
    type: ExerciseType
    is_custom: bool
    user_id: Optional[int] = None
    created_at: datetime
    deleted_at: Optional[datetime] = None


class ExerciseUsageWorkout(BaseModel):
    id: int
    start_time: datetime
    end_time: Optional[datetime] = None


class ExerciseUsage(BaseModel):
    exercise: ExerciseRead
    workouts: List[ExerciseUsageWorkout]
    counts: dict


# ---------- Workouts ----------
class WorkoutCreate(FrozenInput):
    start_time: Optional[datetime] = None
    notes: Optional[str] = Field(default=None, max_length=500)


class WorkoutUpdate(FrozenInput):
    end_time: Optional[datetime] = None
    notes: Optional[str] = Field(default=None, max_length=500)

    @model_validator(mode="after")
    def _at_least_one(self):
        _require_any(self, ("end_time", "notes"))
        return self


# ---------- Workout exercises ----------
class WorkoutExerciseCreate(FrozenInput):
    exercise_id: int
    order_index: Optional[int] = Field(default=None, ge=0)
    notes: Optional[str] = Field(default=None, max_length=500)


class WorkoutExerciseUpdate(FrozenInput):
    order_index: Optional[int] = Field(default=None, ge=0)
    notes: Optional[str] = Field(default=None, max_length=500)

    @model_validator(mode="after")
    def _at_least_one(self):
        if "order_index" in self.model_fields_set and self.order_index is None:
            raise ValueError("order_index cannot be null")
        _require_any(self, ("order_index", "notes"))
        return self


# ---------- Sets ----------
class WorkoutSetCreate(FrozenInput):
    set_number: Optional[int] = Field(default=None, ge=1)
    completed: bool = False
    # strength
    reps: Optional[int] = Field(default=None, gt=0)
    weight: Optional[float] = Field(default=None, ge=0)
    weight_unit: Optional[WeightUnit] = None
    # cardio
    duration: Optional[int] = Field(default=None, gt=0)
    distance: Optional[float] = Field(default=None, ge=0)
    distance_unit: Optional[DistanceUnit] = None


class WorkoutSetUpdate(FrozenInput):
    set_number: Optional[int] = Field(default=None, ge=1)
    completed: Optional[bool] = None
    reps: Optional[int] = Field(default=None, gt=0)
    weight: Optional[float] = Field(default=None, ge=0)
    weight_unit: Optional[WeightUnit] = None
    duration: Optional[int] = Field(default=None, gt=0)
    distance: Optional[float] = Field(default=None, ge=0)
    distance_unit: Optional[DistanceUnit] = None

    @model_validator(mode="after")
    def _at_least_one(self):
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided for update")
        for name in ("set_number", "completed"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self


class WorkoutSetRead(ReadModel):
    id: int
    workout_exercise_id: int
    set_number: int
    completed: bool
    reps: Optional[int] = None
    weight: Optional[float] = None
    weight_unit: Optional[WeightUnit] = None
    duration: Optional[int] = None
    distance: Optional[float] = None
    distance_unit: Optional[DistanceUnit] = None
    created_at: datetime


class WorkoutExerciseRead(ReadModel):
    id: int
    workout_session_id: int
    exercise_id: int
    order_index: int
    notes: Optional[str] = None
    created_at: datetime
    exercise: Optional[ExerciseRead] = None
    sets: List[WorkoutSetRead] = []


class WorkoutRead(ReadModel):
    id: int
    user_id: int
    start_time: datetime
    end_time: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    exercises: List[WorkoutExerciseRead] = []


class Pagination(BaseModel):
    total: int
    limit: int
    offset: int
    has_more: bool


class WorkoutList(BaseModel):
    workouts: List[WorkoutRead]
    pagination: Pagination
