from fastapi import APIRouter, Depends
from sqlmodel import Session as DBSession

from ..db import get_session
from ..auth import require_csrf
from ..models import User
from ..schemas import WorkoutSetCreate, WorkoutSetRead, WorkoutSetUpdate
from ..services import workout_sets_service as svc


router = APIRouter(
    prefix="/api/workouts/{workout_id}/exercises/{workout_exercise_id}/sets",
    tags=["workout-sets"],
)


@router.post("", response_model=WorkoutSetRead, status_code=201)
def add_set(
    workout_id: int,
    workout_exercise_id: int,
    payload: WorkoutSetCreate,
    db: DBSession = Depends(get_session),
    user: User = Depends(require_csrf),
):
    return svc.add_set(
        db=db,
        user_id=user.id,
        workout_id=workout_id,
        workout_exercise_id=workout_exercise_id,
        payload=payload,
    )


@router.patch("/{set_id}", response_model=WorkoutSetRead)
def update_set(
    workout_id: int,
    workout_exercise_id: int,
    set_id: int,
    payload: WorkoutSetUpdate,
    db: DBSession = Depends(get_session),
    user: User = Depends(require_csrf),
):
    return svc.update_set(
        db=db,
        user_id=user.id,
        workout_id=workout_id,
        workout_exercise_id=workout_exercise_id,
        set_id=set_id,
        payload=payload,
    )


@router.delete("/{set_id}", status_code=204)
def delete_set(
    workout_id: int,
    workout_exercise_id: int,
    set_id: int,
    db: DBSession = Depends(get_session),
    user: User = Depends(require_csrf),
):
    svc.delete_set(
        db=db,
        user_id=user.id,
        workout_id=workout_id,
        workout_exercise_id=workout_exercise_id,
        set_id=set_id,
    )
    return None
