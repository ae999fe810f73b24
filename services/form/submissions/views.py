"""HTTP endpoints for response ingestion, live updates and reporting."""
from __future__ import annotations

import csv
import ipaddress
import json
import logging
import uuid
from typing import Any, AsyncIterator, Dict, Iterator, Optional

from asgiref.sync import sync_to_async
from django.conf import settings
from django.core.handlers.asgi import ASGIRequest
from django.core.serializers.json import DjangoJSONEncoder
from django.http import HttpRequest, JsonResponse, StreamingHttpResponse
from django.views.decorators.http import require_GET
from rest_framework import status
from rest_framework.decorators import api_view
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from .aggregation import summarize
from .exceptions import MalformedRequest
from .export import EXPORT_HEADER, export_rows
from .hub import ObserverClosed, QueueObserver, hub
from .ingestion import submit_response
from .serializers import FormResponseSerializer, SubmissionRequestSerializer
from .store import default_store

logger = logging.getLogger(__name__)


def request_meta(request: HttpRequest) -> Dict[str, str]:
    """Client address and user agent, recorded as given."""

    ip = request.META.get("REMOTE_ADDR", "")
    try:
        ip = str(ipaddress.ip_address(ip))
    except ValueError:
        pass
    return {"ip": ip, "ua": request.META.get("HTTP_USER_AGENT", "")}


class ResponseSubmissionView(APIView):
    def post(self, request: Request) -> Response:
        payload_serializer = SubmissionRequestSerializer(data=request.data)
        if not payload_serializer.is_valid():
            raise MalformedRequest(
                detail={"detail": MalformedRequest.default_detail, "errors": payload_serializer.errors}
            )
        data = payload_serializer.validated_data

        response = submit_response(
            data["formId"],
            [dict(answer) for answer in data["answers"]],
            request_meta(request),
        )
        serializer = FormResponseSerializer(response)
        return Response(serializer.data, status=status.HTTP_201_CREATED)


@api_view(["GET"])
def health(_: Request) -> Response:
    """Readiness endpoint for orchestration tooling."""

    return Response({"status": "ok"})


@api_view(["GET"])
def analytics_summary(_: Request, form_id: uuid.UUID) -> Response:
    """Answer counts per field and canonical value."""

    default_store.find_form(form_id)
    return Response({"buckets": summarize(form_id)})


class _Echo:
    """File-like sink that hands each written CSV line straight back."""

    def write(self, value: str) -> str:
        return value


@api_view(["GET"])
def export_csv(_: Request, form_id: uuid.UUID) -> StreamingHttpResponse:
    """Stream every stored answer of a form as CSV."""

    default_store.find_form(form_id)
    writer = csv.writer(_Echo())

    def _rows() -> Iterator[str]:
        yield writer.writerow(EXPORT_HEADER)
        for row in export_rows(form_id):
            yield writer.writerow(row)

    response = StreamingHttpResponse(_rows(), content_type="text/csv")
    response["Content-Disposition"] = f'attachment; filename="form_{form_id}_responses.csv"'
    return response


CONNECTED = ": connected\n\n"
KEEP_ALIVE = ": keep-alive\n\n"


def _frame(event: Optional[Dict[str, Any]]) -> str:
    if event is None:
        return KEEP_ALIVE
    data = json.dumps(event, cls=DjangoJSONEncoder)
    return f"event: {event['type']}\ndata: {data}\n\n"


def _fell_behind(observer: QueueObserver) -> None:
    logger.info("Live observer for form %s fell behind, disconnecting", observer.form_id)


def _event_stream(observer: QueueObserver, keepalive: float) -> Iterator[str]:
    """Blocking stream for WSGI workers, one thread per connection."""

    hub.subscribe(observer.form_id, observer)
    try:
        yield CONNECTED
        while True:
            try:
                event = observer.next_event(timeout=keepalive)
            except ObserverClosed:
                _fell_behind(observer)
                return
            yield _frame(event)
    finally:
        observer.close()
        hub.unsubscribe(observer.form_id, observer)


async def _async_event_stream(observer: QueueObserver, keepalive: float) -> AsyncIterator[str]:
    """Stream for ASGI servers; each wait runs off the event loop."""

    next_event = sync_to_async(observer.next_event, thread_sensitive=False)
    hub.subscribe(observer.form_id, observer)
    try:
        yield CONNECTED
        while True:
            try:
                event = await next_event(timeout=keepalive)
            except ObserverClosed:
                _fell_behind(observer)
                return
            yield _frame(event)
    finally:
        observer.close()
        hub.unsubscribe(observer.form_id, observer)


@require_GET
def live_updates(request: HttpRequest):
    """Server-sent events for one form's newly created responses."""

    form_id = request.GET.get("formId", "").strip()
    if not form_id:
        return JsonResponse({"error": "missing formId"}, status=400)
    try:
        form_id = str(uuid.UUID(form_id))
    except ValueError:
        return JsonResponse({"error": "bad formId"}, status=400)

    observer = QueueObserver(form_id)
    keepalive = settings.FORM_LIVE_KEEPALIVE_SECONDS
    # ASGI handlers buffer synchronous iterators to completion before sending.
    if isinstance(request, ASGIRequest):
        stream = _async_event_stream(observer, keepalive)
    else:
        stream = _event_stream(observer, keepalive)
    response = StreamingHttpResponse(stream, content_type="text/event-stream")
    response["Cache-Control"] = "no-cache"
    response["X-Accel-Buffering"] = "no"
    return response
