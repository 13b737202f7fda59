"""Type-conditional rules for set payloads.

Runs after the request body has passed shape validation in ``schemas``: the
exercise type decides which field group a set may carry. Strength sets need
``reps`` and may carry ``weight``/``weight_unit``; cardio sets need
``duration`` and may carry ``distance``/``distance_unit``. Fields from the
other group are rejected, on create and on update alike.
"""
from __future__ import annotations
from typing import Any, Dict, Optional

from ..errors import ValidationFailed
from ..models import ExerciseType, WorkoutSet
from ..schemas import WorkoutSetCreate, WorkoutSetUpdate

STRENGTH_FIELDS = ("reps", "weight", "weight_unit")
CARDIO_FIELDS = ("duration", "distance", "distance_unit")
COMMON_FIELDS = ("set_number", "completed")

_RULES = {
    ExerciseType.strength: {
        "fields": STRENGTH_FIELDS,
        "required": "reps",
        "amount": "weight",
        "unit": "weight_unit",
        "label": "strength",
    },
    ExerciseType.cardio: {
        "fields": CARDIO_FIELDS,
        "required": "duration",
        "amount": "distance",
        "unit": "distance_unit",
        "label": "cardio",
    },
}


def _rule(exercise_type: ExerciseType) -> dict:
    return _RULES[ExerciseType(exercise_type)]


def _reject_foreign_fields(rule: dict, data: Dict[str, Any]) -> None:
    for name, value in data.items():
        if name in COMMON_FIELDS or name in rule["fields"]:
            continue
        if value is not None:
            raise ValidationFailed(
                f"{name} is not valid for {rule['label']} exercises", field=name
            )


def _check_unit(rule: dict, amount: Optional[float], unit: Any) -> None:
    if amount is not None and unit is None:
        raise ValidationFailed(
            f"{rule['unit']} is required when {rule['amount']} is provided", field=rule["unit"]
        )


def validate_new_set(exercise_type: ExerciseType, payload: WorkoutSetCreate) -> Dict[str, Any]:
    """Return the type-gated column values for a new set."""
    rule = _rule(exercise_type)
    data = payload.model_dump()
    _reject_foreign_fields(rule, data)

    required = rule["required"]
    if data.get(required) is None:
        raise ValidationFailed(
            f"{required} is required for {rule['label']} exercises", field=required
        )
    _check_unit(rule, data.get(rule["amount"]), data.get(rule["unit"]))

    return {name: data.get(name) for name in rule["fields"]}


def validate_set_update(
    exercise_type: ExerciseType, existing: WorkoutSet, payload: WorkoutSetUpdate
) -> Dict[str, Any]:
    """Return the column changes for an existing set, checking only supplied fields."""
    rule = _rule(exercise_type)
    data = payload.supplied()
    _reject_foreign_fields(rule, data)

    required = rule["required"]
    if required in data and data[required] is None:
        raise ValidationFailed(f"{required} cannot be cleared", field=required)

    if rule["amount"] in data or rule["unit"] in data:
        amount = data.get(rule["amount"], getattr(existing, rule["amount"]))
        unit = data.get(rule["unit"], getattr(existing, rule["unit"]))
        _check_unit(rule, amount, unit)

    return {
        name: value
        for name, value in data.items()
        if name in rule["fields"] or name in COMMON_FIELDS
    }
