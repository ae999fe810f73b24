"""Schema-driven validation of submitted answers."""
from __future__ import annotations

from typing import Any, Dict, Iterable, Mapping, Sequence

from forms.models import FormField

from .canonical import STRING, STRING_LIST, is_number, value_kind
from .exceptions import AnswerValidationError


def _check_text(field: FormField, value: Any) -> None:
    if value_kind(value) != STRING:
        raise AnswerValidationError(
            AnswerValidationError.TYPE_MISMATCH,
            field.key,
            f"field {field.key} expects string",
        )


def _check_mcq(field: FormField, value: Any) -> None:
    _check_text(field, value)
    # No options means the question is unconstrained.
    if field.options and value not in field.options:
        raise AnswerValidationError(
            AnswerValidationError.INVALID_OPTION,
            field.key,
            f"field {field.key} invalid option",
        )


def _check_checkbox(field: FormField, value: Any) -> None:
    if not isinstance(value, (list, tuple)):
        raise AnswerValidationError(
            AnswerValidationError.TYPE_MISMATCH,
            field.key,
            f"field {field.key} expects array",
        )
    # Unlike mcq, a checkbox without options accepts nothing, not even an
    # empty selection. Kept as is pending product review.
    allowed = set(field.options or [])
    if not allowed or value_kind(value) != STRING_LIST or not set(value) <= allowed:
        raise AnswerValidationError(
            AnswerValidationError.INVALID_OPTION,
            field.key,
            f"field {field.key} invalid checkbox value",
        )


def _check_rating(field: FormField, value: Any) -> None:
    if not is_number(value):
        raise AnswerValidationError(
            AnswerValidationError.TYPE_MISMATCH,
            field.key,
            f"field {field.key} expects number",
        )
    low, high = field.rating_bounds
    try:
        whole = int(value)
    except (OverflowError, ValueError):
        whole = None
    if whole is None or not low <= whole <= high:
        raise AnswerValidationError(
            AnswerValidationError.OUT_OF_RANGE,
            field.key,
            f"field {field.key} out of range",
        )


CHECKS = {
    FormField.TEXT: _check_text,
    FormField.TEXTAREA: _check_text,
    FormField.MCQ: _check_mcq,
    FormField.CHECKBOX: _check_checkbox,
    FormField.RATING: _check_rating,
}


def validate_answers(fields: Iterable[FormField], answers: Sequence[Mapping[str, Any]]) -> None:
    """Raise ``AnswerValidationError`` for the first answer the schema rejects.

    Required fields are checked before any answer value; answers are then
    checked in submission order. Nothing is collected beyond the first
    failure.
    """

    by_key: Dict[str, FormField] = {field.key: field for field in fields}
    answered = {answer.get("fieldId") for answer in answers}

    for field in by_key.values():
        if field.required and field.key not in answered:
            raise AnswerValidationError(
                AnswerValidationError.MISSING_REQUIRED_FIELD,
                field.key,
                f"missing required field: {field.key}",
            )

    for answer in answers:
        field_id = answer.get("fieldId")
        field = by_key.get(field_id)
        if field is None:
            raise AnswerValidationError(
                AnswerValidationError.UNKNOWN_FIELD,
                str(field_id),
                f"unknown field: {field_id}",
            )
        check = CHECKS.get(field.field_type)
        if check is None:
            raise AnswerValidationError(
                AnswerValidationError.UNSUPPORTED_FIELD_TYPE,
                field.key,
                f"unsupported field type {field.field_type}",
            )
        check(field, answer.get("value"))
