from typing import List

from fastapi import APIRouter, Depends
from sqlmodel import Session as DBSession

from ..db import get_session
from ..auth import get_current_user, require_csrf
from ..models import User
from ..schemas import WorkoutExerciseCreate, WorkoutExerciseRead, WorkoutExerciseUpdate
from ..services import workout_exercises_service as svc


router = APIRouter(prefix="/api/workouts/{workout_id}/exercises", tags=["workout-exercises"])


@router.post("", response_model=WorkoutExerciseRead, status_code=201)
def add_exercise(
    workout_id: int,
    payload: WorkoutExerciseCreate,
    db: DBSession = Depends(get_session),
    user: User = Depends(require_csrf),
):
    return svc.add_exercise(db=db, user_id=user.id, workout_id=workout_id, payload=payload)


@router.get("", response_model=List[WorkoutExerciseRead])
def list_exercises(
    workout_id: int,
    db: DBSession = Depends(get_session),
    user: User = Depends(get_current_user),
):
    return svc.list_exercises(db=db, user_id=user.id, workout_id=workout_id)


@router.patch("/{workout_exercise_id}", response_model=WorkoutExerciseRead)
def update_exercise(
    workout_id: int,
    workout_exercise_id: int,
    payload: WorkoutExerciseUpdate,
    db: DBSession = Depends(get_session),
    user: User = Depends(require_csrf),
):
    return svc.update_exercise(
        db=db,
        user_id=user.id,
        workout_id=workout_id,
        workout_exercise_id=workout_exercise_id,
        payload=payload,
    )


@router.delete("/{workout_exercise_id}", status_code=204)
def remove_exercise(
    workout_id: int,
    workout_exercise_id: int,
    db: DBSession = Depends(get_session),
    user: User = Depends(require_csrf),
):
    svc.remove_exercise(
        db=db, user_id=user.id, workout_id=workout_id, workout_exercise_id=workout_exercise_id
    )
    return None
