from __future__ import annotations
from typing import Dict, List, Optional
import logging

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session as DBSession, select, delete

from ..errors import Conflict
from ..models import (
    Exercise,
    User,
    WorkoutExercise,
    WorkoutSession,
    WorkoutSet,
    WorkoutStatus,
)
from ..schemas import (
    ExerciseRead,
    Pagination,
    WorkoutCreate,
    WorkoutExerciseRead,
    WorkoutList,
    WorkoutRead,
    WorkoutSetRead,
    WorkoutUpdate,
)
from .common import get_owned_workout, now_utc

logger = logging.getLogger(__name__)

ACTIVE_EXISTS_MESSAGE = (
    "You already have an active workout in progress. "
    "Please complete it before starting a new one."
)


# ---------- Response shaping ----------
def build_exercise_reads(db: DBSession, rows: List[WorkoutExercise]) -> List[WorkoutExerciseRead]:
    if not rows:
        return []
    ex_ids = {r.exercise_id for r in rows}
    ex_map = {e.id: e for e in db.exec(select(Exercise).where(Exercise.id.in_(ex_ids))).all()}

    sets_by_we: Dict[int, List[WorkoutSet]] = {r.id: [] for r in rows}
    sets = db.exec(
        select(WorkoutSet)
        .where(WorkoutSet.workout_exercise_id.in_(list(sets_by_we)))
        .order_by(WorkoutSet.set_number.asc())
    ).all()
    for s in sets:
        sets_by_we[s.workout_exercise_id].append(s)

    out = []
    for r in sorted(rows, key=lambda r: (r.order_index, r.id)):
        ex = ex_map.get(r.exercise_id)
        out.append(
            WorkoutExerciseRead(
                id=r.id,
                workout_session_id=r.workout_session_id,
                exercise_id=r.exercise_id,
                order_index=r.order_index,
                notes=r.notes,
                created_at=r.created_at,
                exercise=ExerciseRead.model_validate(ex) if ex else None,
                sets=[WorkoutSetRead.model_validate(s) for s in sets_by_we[r.id]],
            )
        )
    return out


def build_workout_reads(db: DBSession, workouts: List[WorkoutSession]) -> List[WorkoutRead]:
    if not workouts:
        return []
    ids = [w.id for w in workouts]
    rows = db.exec(
        select(WorkoutExercise).where(WorkoutExercise.workout_session_id.in_(ids))
    ).all()
    by_workout: Dict[int, List[WorkoutExercise]] = {i: [] for i in ids}
    for r in rows:
        by_workout[r.workout_session_id].append(r)

    nested = {wid: build_exercise_reads(db, items) for wid, items in by_workout.items()}
    return [
        WorkoutRead(
            id=w.id,
            user_id=w.user_id,
            start_time=w.start_time,
            end_time=w.end_time,
            notes=w.notes,
            created_at=w.created_at,
            updated_at=w.updated_at,
            exercises=nested[w.id],
        )
        for w in workouts
    ]


def build_workout_read(db: DBSession, workout: WorkoutSession) -> WorkoutRead:
    return build_workout_reads(db, [workout])[0]


# ---------- Active workout ----------
def _find_active(db: DBSession, user_id: int, exclude_id: Optional[int] = None) -> Optional[WorkoutSession]:
    stmt = (
        select(WorkoutSession)
        .where(WorkoutSession.user_id == user_id)
        .where(WorkoutSession.end_time.is_(None))
    )
    if exclude_id is not None:
        stmt = stmt.where(WorkoutSession.id != exclude_id)
    return db.exec(stmt).first()


def _active_conflict(user_id: int, active: Optional[WorkoutSession]) -> Conflict:
    active_id = active.id if active else None
    logger.warning("Active workout already exists (user_id=%s, active_workout_id=%s)", user_id, active_id)
    return Conflict(ACTIVE_EXISTS_MESSAGE, active_workout_id=active_id)


def start_workout(db: DBSession, user_id: int, payload: WorkoutCreate) -> WorkoutSession:
    """Open a new workout unless the user already has one open.

    Check and insert share one transaction. The user row is locked first where
    the database supports it, and the partial unique index on open workouts
    settles any race the lock cannot see.
    """
    db.exec(select(User.id).where(User.id == user_id).with_for_update()).first()

    active = _find_active(db, user_id)
    if active is not None:
        db.rollback()
        raise _active_conflict(user_id, active)

    w = WorkoutSession(
        user_id=user_id,
        start_time=payload.start_time or now_utc(),
        notes=(payload.notes or None),
    )
    db.add(w)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise _active_conflict(user_id, _find_active(db, user_id))
    db.refresh(w)
    logger.info("Workout %s started (user_id=%s)", w.id, user_id)
    return w


def get_active_workout(db: DBSession, user_id: int) -> Optional[WorkoutSession]:
    return _find_active(db, user_id)


# ---------- CRUD ----------
def list_workouts(
    db: DBSession,
    user_id: int,
    limit: int,
    offset: int,
    status: WorkoutStatus,
) -> WorkoutList:
    conditions = [WorkoutSession.user_id == user_id]
    if status == WorkoutStatus.active:
        conditions.append(WorkoutSession.end_time.is_(None))
    elif status == WorkoutStatus.completed:
        conditions.append(WorkoutSession.end_time.is_not(None))

    stmt = select(WorkoutSession)
    count_stmt = select(func.count()).select_from(WorkoutSession)
    for cond in conditions:
        stmt = stmt.where(cond)
        count_stmt = count_stmt.where(cond)

    total = db.exec(count_stmt).one()
    rows = db.exec(
        stmt.order_by(WorkoutSession.start_time.desc(), WorkoutSession.id.desc())
        .limit(limit)
        .offset(offset)
    ).all()

    return WorkoutList(
        workouts=build_workout_reads(db, list(rows)),
        pagination=Pagination(
            total=total,
            limit=limit,
            offset=offset,
            has_more=offset + limit < total,
        ),
    )


def get_workout(db: DBSession, user_id: int, workout_id: int) -> WorkoutSession:
    return get_owned_workout(db, user_id, workout_id)


def update_workout(
    db: DBSession, user_id: int, workout_id: int, payload: WorkoutUpdate
) -> WorkoutSession:
    w = get_owned_workout(db, user_id, workout_id)
    data = payload.supplied()

    if "end_time" in data:
        if data["end_time"] is None and w.end_time is not None:
            # re-opening must not create a second open workout
            other = _find_active(db, user_id, exclude_id=w.id)
            if other is not None:
                raise _active_conflict(user_id, other)
        w.end_time = data["end_time"]
    if "notes" in data:
        w.notes = data["notes"] or None
    w.updated_at = now_utc()

    db.add(w)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise _active_conflict(user_id, _find_active(db, user_id, exclude_id=workout_id))
    db.refresh(w)
    if "end_time" in data and w.end_time is not None:
        logger.info("Workout %s completed (user_id=%s)", w.id, user_id)
    return w


def delete_workout(db: DBSession, user_id: int, workout_id: int) -> None:
    get_owned_workout(db, user_id, workout_id)
    we_ids = db.exec(
        select(WorkoutExercise.id).where(WorkoutExercise.workout_session_id == workout_id)
    ).all()
    if we_ids:
        db.exec(delete(WorkoutSet).where(WorkoutSet.workout_exercise_id.in_(we_ids)))
        db.exec(delete(WorkoutExercise).where(WorkoutExercise.id.in_(we_ids)))
    db.exec(delete(WorkoutSession).where(WorkoutSession.id == workout_id))
    db.commit()
    logger.info("Workout %s deleted (user_id=%s)", workout_id, user_id)
