"""The response ingestion pipeline: load, validate, store, then broadcast."""
from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, Iterable, Mapping, Optional, Union

from .exceptions import FormNotPublished, MalformedRequest
from .hub import LiveHub, hub
from .models import FormResponse
from .store import ResponseStore, default_store
from .validation import validate_answers

logger = logging.getLogger(__name__)

RESPONSE_CREATED = "response:created"


def parse_form_id(form_id: Union[str, uuid.UUID]) -> uuid.UUID:
    if isinstance(form_id, uuid.UUID):
        return form_id
    try:
        return uuid.UUID(str(form_id))
    except ValueError as exc:
        raise MalformedRequest("bad formId") from exc


def build_event(response: FormResponse) -> Dict[str, Any]:
    return {
        "type": RESPONSE_CREATED,
        "formId": str(response.form_id),
        "payload": {
            "answers": response.answers,
            "submittedAt": response.submitted_at,
        },
    }


def submit_response(
    form_id: Union[str, uuid.UUID],
    answers: Iterable[Mapping[str, Any]],
    meta: Optional[Mapping[str, str]] = None,
    *,
    store: Optional[ResponseStore] = None,
    live_hub: Optional[LiveHub] = None,
) -> FormResponse:
    """Accept one submission or raise the reason it was rejected.

    The response is committed before observers hear about it. Broadcast
    problems are logged and do not affect the returned response.
    """

    store = store or default_store
    live_hub = live_hub or hub

    form_uuid = parse_form_id(form_id)
    form = store.find_form(form_uuid)
    if not form.is_published:
        raise FormNotPublished()

    answer_list = [
        {"fieldId": answer.get("fieldId"), "value": answer.get("value")} for answer in answers
    ]
    validate_answers(form.fields.all(), answer_list)

    captured = {key: str(value) for key, value in (meta or {}).items()}
    response = store.insert(form, answer_list, captured)
    logger.info("Response %s stored for form %s", response.pk, form.pk)

    try:
        delivered = live_hub.publish(str(form.pk), build_event(response))
    except Exception:
        logger.exception("Broadcasting response %s failed", response.pk)
    else:
        logger.debug("Response %s delivered to %d observers", response.pk, delivered)
    return response
