"""Flat export of stored responses."""
from __future__ import annotations

from typing import Iterator, Optional, Tuple, Union
from uuid import UUID

from .canonical import canonical_key
from .store import ResponseStore, default_store

EXPORT_HEADER = ("submittedAt", "fieldId", "value")


def export_rows(
    form_id: Union[str, UUID], store: Optional[ResponseStore] = None
) -> Iterator[Tuple[str, str, str]]:
    """Yield one ``(submittedAt, fieldId, value)`` row per stored answer."""

    store = store or default_store
    for response in store.find_by_form(form_id):
        submitted_at = response.submitted_at.replace(microsecond=0).isoformat().replace("+00:00", "Z")
        for answer in response.answers:
            yield submitted_at, str(answer.get("fieldId")), canonical_key(answer.get("value"))
