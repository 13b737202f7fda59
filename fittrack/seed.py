"""Built-in exercise library.

Library rows are shared by every user (``is_custom=False``, no owner) and are
never modified through the API. ``seed_library`` only inserts names that are
missing, so it is safe to run on every startup.
"""
import logging
from collections import Counter

from sqlmodel import Session as DBSession, select

from .models import Exercise, ExerciseCategory, ExerciseType

logger = logging.getLogger(__name__)

_STRENGTH = ExerciseType.strength

LIBRARY = {
    ExerciseCategory.push: [
        # compound
        "Barbell Bench Press",
        "Incline Barbell Bench Press",
        "Decline Bench Press",
        "Close-Grip Bench Press",
        "Barbell Overhead Press",
        "Push Press",
        "Dips",
        # dumbbell
        "Dumbbell Bench Press",
        "Incline Dumbbell Press",
        "Dumbbell Overhead Press",
        "Dumbbell Shoulder Press",
        "Dumbbell Chest Fly",
        # isolation
        "Lateral Raise",
        "Front Raise",
        "Cable Fly",
        "Tricep Pushdown",
        "Overhead Tricep Extension",
        "Skull Crusher",
        # bodyweight
        "Push-ups",
        "Diamond Push-ups",
        "Pike Push-ups",
    ],
    ExerciseCategory.pull: [
        "Deadlift",
        "Romanian Deadlift",
        "Barbell Row",
        "T-Bar Row",
        "Pull-ups",
        "Chin-ups",
        "Dumbbell Row",
        "Dumbbell Romanian Deadlift",
        "Dumbbell Pullover",
        "Dumbbell Shrugs",
        "Barbell Bicep Curl",
        "Dumbbell Bicep Curl",
        "Hammer Curl",
        "Concentration Curl",
        "Preacher Curl",
        "Cable Curl",
        "Face Pull",
        "Rear Delt Fly",
    ],
    ExerciseCategory.legs: [
        "Barbell Back Squat",
        "Front Squat",
        "Sumo Deadlift",
        "Leg Press",
        "Bulgarian Split Squat",
        "Lunges",
        "Barbell Hip Thrust",
        "Dumbbell Goblet Squat",
        "Dumbbell Lunges",
        "Dumbbell Step-ups",
        "Leg Extension",
        "Leg Curl",
        "Standing Calf Raise",
        "Seated Calf Raise",
        "Bodyweight Squat",
    ],
    ExerciseCategory.core: [
        "Plank",
        "Side Plank",
    ],
    ExerciseCategory.cardio: [
        "Running",
        "Cycling",
        "Rowing Machine",
        "Jump Rope",
    ],
}


def library_entries():
    for category, names in LIBRARY.items():
        ex_type = ExerciseType.cardio if category == ExerciseCategory.cardio else _STRENGTH
        for name in names:
            yield name, category, ex_type


def seed_library(db: DBSession) -> int:
    """Insert missing library exercises. Returns how many were added."""
    existing = set(
        db.exec(
            select(Exercise.name).where(Exercise.is_custom == False)  # noqa: E712
        ).all()
    )

    added = Counter()
    for name, category, ex_type in library_entries():
        if name in existing:
            continue
        db.add(Exercise(name=name, category=category, type=ex_type, is_custom=False, user_id=None))
        added[category.value] += 1

    if added:
        db.commit()
        logger.info(
            "Seeded %s library exercises (%s)",
            sum(added.values()),
            ", ".join(f"{k}: {v}" for k, v in sorted(added.items())),
        )
    else:
        logger.info("Exercise library already seeded")
    return sum(added.values())
