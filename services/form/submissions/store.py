"""Persistence of responses behind a small store interface."""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterator, List, Union
from uuid import UUID

from django.db import DatabaseError, transaction

from forms.models import Form

from .exceptions import FormNotFound, StorageError
from .models import FormResponse

logger = logging.getLogger(__name__)


class ResponseStore:
    """Django ORM backed store for forms and their responses.

    The ingestion pipeline, the aggregator and the CSV export only talk to
    this interface, so tests can swap in an in-memory double.
    """

    def find_form(self, form_id: Union[str, UUID]) -> Form:
        try:
            return Form.objects.prefetch_related("fields").get(pk=form_id)
        except Form.DoesNotExist as exc:
            raise FormNotFound() from exc

    def insert(
        self,
        form: Form,
        answers: List[Dict[str, Any]],
        meta: Dict[str, str],
    ) -> FormResponse:
        try:
            with transaction.atomic():
                return FormResponse.objects.create(form=form, answers=answers, meta=meta)
        except DatabaseError as exc:
            logger.exception("Storing response for form %s failed", form.pk)
            raise StorageError() from exc

    def find_by_form(self, form_id: Union[str, UUID]) -> Iterator[FormResponse]:
        return (
            FormResponse.objects.filter(form_id=form_id)
            .order_by()
            .only("id", "form_id", "submitted_at", "answers")
            .iterator()
        )


default_store = ResponseStore()
