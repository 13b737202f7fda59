from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlmodel import Session as DBSession


from ..db import get_session
from ..auth import get_current_user, require_csrf
from ..models import User, WorkoutStatus
from ..schemas import WorkoutCreate, WorkoutList, WorkoutRead, WorkoutUpdate
from ..services import workouts_service as svc


router = APIRouter(prefix="/api/workouts", tags=["workouts"])


@router.post("", response_model=WorkoutRead, status_code=201)
def start_workout(
    payload: Optional[WorkoutCreate] = None,
    db: DBSession = Depends(get_session),
    user: User = Depends(require_csrf),
):
    w = svc.start_workout(db=db, user_id=user.id, payload=payload or WorkoutCreate())
    return svc.build_workout_read(db, w)


@router.get("", response_model=WorkoutList)
def list_workouts(
    db: DBSession = Depends(get_session),
    user: User = Depends(get_current_user),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    status: WorkoutStatus = Query(WorkoutStatus.all, description="active, completed or all"),
):
    return svc.list_workouts(
        db=db, user_id=user.id, limit=limit, offset=offset, status=status
    )


@router.get("/active", response_model=WorkoutRead)
def get_active_workout(
    db: DBSession = Depends(get_session),
    user: User = Depends(get_current_user),
):
    w = svc.get_active_workout(db=db, user_id=user.id)
    if w is None:
        return Response(status_code=204)
    return svc.build_workout_read(db, w)


@router.get("/{workout_id}", response_model=WorkoutRead)
def get_workout(
    workout_id: int,
    db: DBSession = Depends(get_session),
    user: User = Depends(get_current_user),
):
    w = svc.get_workout(db=db, user_id=user.id, workout_id=workout_id)
    return svc.build_workout_read(db, w)


@router.patch("/{workout_id}", response_model=WorkoutRead)
def update_workout(
    workout_id: int,
    payload: WorkoutUpdate,
    db: DBSession = Depends(get_session),
    user: User = Depends(require_csrf),
):
    w = svc.update_workout(db=db, user_id=user.id, workout_id=workout_id, payload=payload)
    return svc.build_workout_read(db, w)


@router.delete("/{workout_id}", status_code=204)
def delete_workout(
    workout_id: int,
    db: DBSession = Depends(get_session),
    user: User = Depends(require_csrf),
):
    svc.delete_workout(db=db, user_id=user.id, workout_id=workout_id)
    return None
