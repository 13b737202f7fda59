from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session as DBSession


from ..db import get_session
from ..auth import get_current_user, require_csrf
from ..models import ExerciseCategory, ExerciseType, User


from ..schemas import ExerciseCreate, ExerciseRead, ExerciseUpdate, ExerciseUsage
from ..services import exercises_service as svc


router = APIRouter(prefix="/api/exercises", tags=["exercises"])


@router.get("", response_model=List[ExerciseRead])
def list_exercises(
    db: DBSession = Depends(get_session),
    user: User = Depends(get_current_user),
    category: Optional[ExerciseCategory] = Query(None, description="Category filter"),
    type: Optional[ExerciseType] = Query(None, description="strength or cardio"),
    search: Optional[str] = Query(
        None, min_length=1, max_length=100, description="Substring name match (case-insensitive)"
    ),
):
    return svc.list_exercises(
        db=db, user_id=user.id, category=category, type=type, search=search
    )


@router.post("", response_model=ExerciseRead, status_code=201)
def create_exercise(
    payload: ExerciseCreate,
    db: DBSession = Depends(get_session),
    user: User = Depends(require_csrf),
):
    return svc.create_exercise(db=db, user_id=user.id, payload=payload)


@router.get("/{exercise_id}", response_model=ExerciseRead)
def get_exercise(
    exercise_id: int,
    db: DBSession = Depends(get_session),
    user: User = Depends(get_current_user),
):
    return svc.get_exercise(db=db, user_id=user.id, exercise_id=exercise_id)


@router.patch("/{exercise_id}", response_model=ExerciseRead)
def update_exercise(
    exercise_id: int,
    payload: ExerciseUpdate,
    db: DBSession = Depends(get_session),
    user: User = Depends(require_csrf),
):
    return svc.update_exercise(
        db=db, user_id=user.id, exercise_id=exercise_id, payload=payload
    )


@router.delete("/{exercise_id}", status_code=204)
def delete_exercise(
    exercise_id: int,
    db: DBSession = Depends(get_session),
    user: User = Depends(require_csrf),
):
    svc.delete_exercise(db=db, user_id=user.id, exercise_id=exercise_id)
    return None


@router.get("/{exercise_id}/usage", response_model=ExerciseUsage)
def get_exercise_usage(
    exercise_id: int,
    db: DBSession = Depends(get_session),
    user: User = Depends(get_current_user),
):
    return svc.get_exercise_usage(db=db, user_id=user.id, exercise_id=exercise_id)
