"""Failures raised by the response ingestion pipeline.

Every failure is a REST framework ``APIException`` so views can let them
propagate and the framework renders a JSON body with the right status code.
"""
from __future__ import annotations

from typing import Optional

from rest_framework import status
from rest_framework.exceptions import APIException, NotFound, ParseError


class FormNotFound(NotFound):
    default_detail = "Form not found."
    default_code = "form_not_found"


class FormNotPublished(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Form is not published."
    default_code = "form_not_published"


class MalformedRequest(ParseError):
    default_detail = "Malformed request."
    default_code = "malformed_request"


class StorageError(APIException):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = "Response could not be stored."
    default_code = "storage_error"


class AnswerValidationError(APIException):
    """An answer set that does not satisfy the form's field schema."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_code = "invalid_answers"

    MISSING_REQUIRED_FIELD = "missing_required_field"
    UNKNOWN_FIELD = "unknown_field"
    TYPE_MISMATCH = "type_mismatch"
    INVALID_OPTION = "invalid_option"
    OUT_OF_RANGE = "out_of_range"
    UNSUPPORTED_FIELD_TYPE = "unsupported_field_type"

    def __init__(self, kind: str, field_id: str, message: Optional[str] = None) -> None:
        self.kind = kind
        self.field_id = field_id
        self.message = message or f"{kind.replace('_', ' ')}: {field_id}"
        super().__init__(
            detail={"detail": self.message, "kind": kind, "fieldId": field_id},
            code=kind,
        )

    def __str__(self) -> str:
        return self.message
