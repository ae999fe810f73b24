"""Per-field value histograms computed from stored responses."""
from __future__ import annotations

from collections import Counter, defaultdict
from typing import DefaultDict, Dict, Optional, Union
from uuid import UUID

from .canonical import canonical_key
from .store import ResponseStore, default_store


def summarize(
    form_id: Union[str, UUID], store: Optional[ResponseStore] = None
) -> Dict[str, Dict[str, int]]:
    """Count answers per ``(fieldId, canonical value)`` for one form.

    Buckets are rebuilt from the store on every call.
    """

    store = store or default_store
    buckets: DefaultDict[str, Counter] = defaultdict(Counter)
    for response in store.find_by_form(form_id):
        for answer in response.answers:
            buckets[str(answer.get("fieldId"))][canonical_key(answer.get("value"))] += 1
    return {field_id: dict(counts) for field_id, counts in buckets.items()}
