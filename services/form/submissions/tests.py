"""Tests for response ingestion, live fan-out and reporting."""
from __future__ import annotations

import asyncio
import csv
import io
import json
import threading
import uuid
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List
from unittest import mock

from django.db import DatabaseError
from django.test import AsyncRequestFactory, SimpleTestCase, TestCase, override_settings
from django.urls import reverse
from rest_framework.test import APIClient

from forms.models import Form, FormField

from .aggregation import summarize
from .canonical import canonical_key
from .exceptions import (
    AnswerValidationError,
    FormNotFound,
    FormNotPublished,
    MalformedRequest,
    StorageError,
)
from .export import export_rows
from .hub import LiveHub, ObserverClosed, QueueObserver, hub
from .ingestion import RESPONSE_CREATED, submit_response
from .models import FormResponse
from .validation import validate_answers
from .views import live_updates

MCQ_FIELD = {"key": "q1", "field_type": FormField.MCQ, "required": True, "options": ["yes", "no"]}


def make_form(status: str = Form.PUBLISHED, fields: List[Dict[str, Any]] | None = None) -> Form:
    form = Form.objects.create(title="Survey", status=status)
    for index, field in enumerate(fields or [MCQ_FIELD]):
        FormField.objects.create(form=form, order=index, **field)
    return Form.objects.prefetch_related("fields").get(pk=form.pk)


class RecordingObserver:
    def __init__(self) -> None:
        self.events: List[Dict[str, Any]] = []
        self._lock = threading.Lock()

    def deliver(self, event: Dict[str, Any]) -> None:
        with self._lock:
            self.events.append(event)


class BrokenObserver:
    def deliver(self, event: Dict[str, Any]) -> None:
        raise ConnectionResetError("peer went away")


class InMemoryResponseStore:
    """Thread-safe stand-in for the ORM store holding a single form."""

    def __init__(self, form: Form) -> None:
        self._form = form
        self._lock = threading.Lock()
        self._responses: List[FormResponse] = []

    def find_form(self, form_id):
        if form_id != self._form.pk:
            raise FormNotFound()
        return self._form

    def insert(self, form, answers, meta):
        response = FormResponse(form=form, answers=answers, meta=meta)
        with self._lock:
            self._responses.append(response)
        return response

    def find_by_form(self, form_id):
        with self._lock:
            snapshot = list(self._responses)
        return (response for response in snapshot if response.form_id == form_id)


class CanonicalKeyTests(SimpleTestCase):
    def test_strings_are_unchanged(self) -> None:
        self.assertEqual(canonical_key("yes"), "yes")
        self.assertEqual(canonical_key(""), "")

    def test_numbers_use_shortest_decimal_text(self) -> None:
        self.assertEqual(canonical_key(4), "4")
        self.assertEqual(canonical_key(4.0), "4")
        self.assertEqual(canonical_key(2.50), "2.5")
        self.assertEqual(canonical_key(0.1), "0.1")
        self.assertEqual(canonical_key(-3), "-3")
        self.assertEqual(canonical_key(1e21), "1000000000000000000000")
        self.assertEqual(canonical_key(1e-7), "0.0000001")

    def test_lists_join_with_pipe(self) -> None:
        self.assertEqual(canonical_key(["a", "b"]), "a|b")
        self.assertEqual(canonical_key([]), "")
        self.assertEqual(canonical_key(["a", 1, 2.5]), "a|1|2.5")
        # Known ambiguity, kept for compatibility with existing exports.
        self.assertEqual(canonical_key(["a|b"]), canonical_key(["a", "b"]))

    def test_other_values_are_stable_json(self) -> None:
        self.assertEqual(canonical_key(True), "true")
        self.assertEqual(canonical_key(None), "null")
        self.assertEqual(canonical_key({"b": 1, "a": [1, 2]}), '{"a":[1,2],"b":1}')
        self.assertEqual(canonical_key({"a": 1, "b": 2}), canonical_key({"b": 2, "a": 1}))


class ValidateAnswersTests(SimpleTestCase):
    def _field(self, key: str, field_type: str, **kwargs: Any) -> FormField:
        return FormField(key=key, field_type=field_type, **kwargs)

    def _assert_rejected(self, fields, answers, kind: str, field_id: str) -> None:
        with self.assertRaises(AnswerValidationError) as ctx:
            validate_answers(fields, answers)
        self.assertEqual(ctx.exception.kind, kind)
        self.assertEqual(ctx.exception.field_id, field_id)

    def test_valid_answers_pass(self) -> None:
        fields = [
            self._field("name", FormField.TEXT, required=True),
            self._field("bio", FormField.TEXTAREA),
            self._field("q1", FormField.MCQ, options=["yes", "no"]),
            self._field("tags", FormField.CHECKBOX, options=["a", "b", "c"]),
            self._field("score", FormField.RATING),
        ]
        answers = [
            {"fieldId": "name", "value": "Ada"},
            {"fieldId": "bio", "value": "line one\nline two"},
            {"fieldId": "q1", "value": "no"},
            {"fieldId": "tags", "value": ["c", "a"]},
            {"fieldId": "score", "value": 3},
        ]
        self.assertIsNone(validate_answers(fields, answers))

    def test_optional_fields_may_be_omitted(self) -> None:
        fields = [self._field("bio", FormField.TEXTAREA), self._field("score", FormField.RATING)]
        self.assertIsNone(validate_answers(fields, []))

    def test_missing_required_field(self) -> None:
        fields = [self._field("name", FormField.TEXT, required=True)]
        self._assert_rejected(fields, [], AnswerValidationError.MISSING_REQUIRED_FIELD, "name")

    def test_required_check_runs_before_value_checks(self) -> None:
        fields = [
            self._field("name", FormField.TEXT),
            self._field("email", FormField.TEXT, required=True),
        ]
        answers = [{"fieldId": "name", "value": 42}]
        self._assert_rejected(fields, answers, AnswerValidationError.MISSING_REQUIRED_FIELD, "email")

    def test_unknown_field(self) -> None:
        fields = [self._field("name", FormField.TEXT)]
        answers = [{"fieldId": "ghost", "value": "boo"}]
        self._assert_rejected(fields, answers, AnswerValidationError.UNKNOWN_FIELD, "ghost")

    def test_text_requires_string(self) -> None:
        fields = [self._field("name", FormField.TEXTAREA)]
        for value in (7, ["a"], None, True):
            with self.subTest(value=value):
                self._assert_rejected(
                    fields, [{"fieldId": "name", "value": value}], AnswerValidationError.TYPE_MISMATCH, "name"
                )

    def test_mcq_option_must_match_exactly(self) -> None:
        fields = [self._field("q1", FormField.MCQ, required=True, options=["yes", "no"])]
        self._assert_rejected(
            fields, [{"fieldId": "q1", "value": "maybe"}], AnswerValidationError.INVALID_OPTION, "q1"
        )
        self._assert_rejected(
            fields, [{"fieldId": "q1", "value": "Yes"}], AnswerValidationError.INVALID_OPTION, "q1"
        )
        self._assert_rejected(
            fields, [{"fieldId": "q1", "value": ["yes"]}], AnswerValidationError.TYPE_MISMATCH, "q1"
        )

    def test_mcq_without_options_is_unconstrained(self) -> None:
        fields = [self._field("q1", FormField.MCQ)]
        self.assertIsNone(validate_answers(fields, [{"fieldId": "q1", "value": "anything"}]))

    def test_checkbox_values_must_be_known_options(self) -> None:
        fields = [self._field("tags", FormField.CHECKBOX, options=["a", "b"])]
        self.assertIsNone(validate_answers(fields, [{"fieldId": "tags", "value": []}]))
        self._assert_rejected(
            fields, [{"fieldId": "tags", "value": ["a", "z"]}], AnswerValidationError.INVALID_OPTION, "tags"
        )
        self._assert_rejected(
            fields, [{"fieldId": "tags", "value": ["a", 1]}], AnswerValidationError.INVALID_OPTION, "tags"
        )
        self._assert_rejected(
            fields, [{"fieldId": "tags", "value": "a"}], AnswerValidationError.TYPE_MISMATCH, "tags"
        )

    def test_checkbox_without_options_rejects_everything(self) -> None:
        fields = [self._field("tags", FormField.CHECKBOX)]
        for value in (["a"], [], ["a", "b"]):
            with self.subTest(value=value):
                self._assert_rejected(
                    fields, [{"fieldId": "tags", "value": value}], AnswerValidationError.INVALID_OPTION, "tags"
                )

    def test_rating_default_range(self) -> None:
        fields = [self._field("score", FormField.RATING)]
        for value in (1, 5, 3.0):
            with self.subTest(value=value):
                self.assertIsNone(validate_answers(fields, [{"fieldId": "score", "value": value}]))
        for value in (0, 6, -1):
            with self.subTest(value=value):
                self._assert_rejected(
                    fields, [{"fieldId": "score", "value": value}], AnswerValidationError.OUT_OF_RANGE, "score"
                )

    def test_rating_truncates_toward_zero(self) -> None:
        fields = [self._field("score", FormField.RATING)]
        self.assertIsNone(validate_answers(fields, [{"fieldId": "score", "value": 5.9}]))
        self._assert_rejected(
            fields, [{"fieldId": "score", "value": 0.9}], AnswerValidationError.OUT_OF_RANGE, "score"
        )
        self._assert_rejected(
            fields, [{"fieldId": "score", "value": float("inf")}], AnswerValidationError.OUT_OF_RANGE, "score"
        )

    def test_rating_custom_bounds(self) -> None:
        fields = [self._field("nps", FormField.RATING, min_value=0, max_value=10)]
        self.assertIsNone(validate_answers(fields, [{"fieldId": "nps", "value": 0}]))
        self.assertIsNone(validate_answers(fields, [{"fieldId": "nps", "value": 10}]))
        self._assert_rejected(
            fields, [{"fieldId": "nps", "value": 11}], AnswerValidationError.OUT_OF_RANGE, "nps"
        )

    def test_rating_requires_number(self) -> None:
        fields = [self._field("score", FormField.RATING)]
        for value in ("3", True, None, [3]):
            with self.subTest(value=value):
                self._assert_rejected(
                    fields, [{"fieldId": "score", "value": value}], AnswerValidationError.TYPE_MISMATCH, "score"
                )

    def test_unsupported_field_type(self) -> None:
        fields = [self._field("when", "date")]
        self._assert_rejected(
            fields,
            [{"fieldId": "when", "value": "2024-01-01"}],
            AnswerValidationError.UNSUPPORTED_FIELD_TYPE,
            "when",
        )

    def test_first_failure_in_answer_order_wins(self) -> None:
        fields = [self._field("a", FormField.TEXT), self._field("b", FormField.RATING)]
        answers = [{"fieldId": "b", "value": 9}, {"fieldId": "a", "value": 1}]
        self._assert_rejected(fields, answers, AnswerValidationError.OUT_OF_RANGE, "b")


class LiveHubTests(SimpleTestCase):
    def setUp(self) -> None:
        self.hub = LiveHub()

    def test_observers_only_receive_their_form(self) -> None:
        x_observer = RecordingObserver()
        y_observer = RecordingObserver()
        self.hub.subscribe("X", x_observer)
        self.hub.subscribe("Y", y_observer)

        self.assertEqual(self.hub.publish("X", {"n": 1}), 1)
        self.hub.publish("Y", {"n": 2})
        self.hub.publish("Z", {"n": 3})

        self.assertEqual(x_observer.events, [{"n": 1}])
        self.assertEqual(y_observer.events, [{"n": 2}])

    def test_no_replay_for_late_subscribers(self) -> None:
        observer = RecordingObserver()
        self.hub.publish("X", {"n": 1})
        self.hub.subscribe("X", observer)
        self.hub.publish("X", {"n": 2})
        self.assertEqual(observer.events, [{"n": 2}])

    def test_subscribe_is_idempotent(self) -> None:
        observer = RecordingObserver()
        self.hub.subscribe("X", observer)
        self.hub.subscribe("X", observer)
        self.hub.publish("X", {"n": 1})
        self.assertEqual(observer.events, [{"n": 1}])
        self.assertEqual(self.hub.observer_count("X"), 1)

    def test_unsubscribe_is_safe_to_repeat(self) -> None:
        observer = RecordingObserver()
        self.hub.unsubscribe("missing", observer)
        self.hub.subscribe("X", observer)
        self.hub.unsubscribe("X", observer)
        self.hub.unsubscribe("X", observer)
        self.hub.publish("X", {"n": 1})
        self.assertEqual(observer.events, [])
        self.assertEqual(self.hub.observer_count("X"), 0)

    def test_failing_observer_does_not_affect_others(self) -> None:
        healthy = RecordingObserver()
        self.hub.subscribe("X", BrokenObserver())
        self.hub.subscribe("X", healthy)

        with self.assertLogs("submissions.hub", level="WARNING"):
            delivered = self.hub.publish("X", {"n": 1})

        self.assertEqual(delivered, 1)
        self.assertEqual(healthy.events, [{"n": 1}])

    def test_slow_queue_observer_is_closed(self) -> None:
        observer = QueueObserver("X", maxsize=1)
        self.hub.subscribe("X", observer)
        self.assertEqual(self.hub.publish("X", {"n": 1}), 1)
        with self.assertLogs("submissions.hub", level="WARNING"):
            self.assertEqual(self.hub.publish("X", {"n": 2}), 0)

        self.assertTrue(observer.closed)
        with self.assertRaises(ObserverClosed):
            observer.next_event(timeout=0)

    def test_queue_observer_times_out_quietly(self) -> None:
        observer = QueueObserver("X", maxsize=4)
        self.assertIsNone(observer.next_event(timeout=0.01))
        observer.deliver({"n": 1})
        self.assertEqual(observer.next_event(timeout=0.01), {"n": 1})

    def test_concurrent_subscribe_and_publish(self) -> None:
        stable = RecordingObserver()
        self.hub.subscribe("X", stable)

        def churn(_: int) -> None:
            observer = RecordingObserver()
            for _ in range(50):
                self.hub.subscribe("X", observer)
                self.hub.unsubscribe("X", observer)

        def publish(n: int) -> None:
            self.hub.publish("X", {"n": n})

        with ThreadPoolExecutor(max_workers=8) as pool:
            futures = [pool.submit(churn, n) for n in range(8)]
            futures += [pool.submit(publish, n) for n in range(40)]
            for future in futures:
                future.result()

        self.assertEqual(sorted(event["n"] for event in stable.events), list(range(40)))
        self.assertEqual(self.hub.observer_count("X"), 1)


@override_settings(FORM_LIVE_KEEPALIVE_SECONDS=0.05, FORM_LIVE_QUEUE_SIZE=1)
class AsyncLiveStreamTests(SimpleTestCase):
    """The live view as an ASGI server drives it: ``async for`` over the body."""

    async def test_events_arrive_without_waiting_for_stream_end(self) -> None:
        form_id = str(uuid.uuid4())
        request = AsyncRequestFactory().get("/api/live/", {"formId": form_id})
        response = live_updates(request)
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.is_async)

        chunks = response.__aiter__()
        first = await asyncio.wait_for(chunks.__anext__(), timeout=2)
        self.assertEqual(first, b": connected\n\n")
        self.assertEqual(hub.observer_count(form_id), 1)

        event = {"type": RESPONSE_CREATED, "formId": form_id, "payload": {"answers": [], "submittedAt": None}}
        self.assertEqual(hub.publish(form_id, event), 1)
        lines = (await asyncio.wait_for(chunks.__anext__(), timeout=2)).decode().strip().split("\n")
        self.assertEqual(lines[0], f"event: {RESPONSE_CREATED}")
        self.assertEqual(json.loads(lines[1][len("data: "):]), event)

        keepalive = await asyncio.wait_for(chunks.__anext__(), timeout=2)
        self.assertEqual(keepalive, b": keep-alive\n\n")

        # Two unread events overflow the one-slot queue and end the stream.
        with self.assertLogs("submissions.hub", level="WARNING"):
            hub.publish(form_id, event)
            hub.publish(form_id, event)
        with self.assertRaises(StopAsyncIteration):
            await asyncio.wait_for(chunks.__anext__(), timeout=2)
        self.assertEqual(hub.observer_count(form_id), 0)


class IngestionTests(TestCase):
    def setUp(self) -> None:
        self.live_hub = LiveHub()
        self.observer = RecordingObserver()

    def test_invalid_option_is_rejected(self) -> None:
        form = make_form()
        self.live_hub.subscribe(str(form.pk), self.observer)

        with self.assertRaises(AnswerValidationError) as ctx:
            submit_response(form.pk, [{"fieldId": "q1", "value": "maybe"}], live_hub=self.live_hub)

        self.assertEqual(ctx.exception.kind, AnswerValidationError.INVALID_OPTION)
        self.assertEqual(ctx.exception.field_id, "q1")
        self.assertFalse(FormResponse.objects.exists())
        self.assertEqual(self.observer.events, [])

    def test_accepted_response_is_stored_and_broadcast(self) -> None:
        form = make_form()
        self.live_hub.subscribe(str(form.pk), self.observer)

        response = submit_response(
            str(form.pk),
            [{"fieldId": "q1", "value": "yes"}],
            {"ip": "10.0.0.1", "ua": "pytest"},
            live_hub=self.live_hub,
        )

        stored = FormResponse.objects.get()
        self.assertEqual(stored.pk, response.pk)
        self.assertEqual(stored.answers, [{"fieldId": "q1", "value": "yes"}])
        self.assertEqual(stored.meta, {"ip": "10.0.0.1", "ua": "pytest"})
        self.assertEqual(
            self.observer.events,
            [
                {
                    "type": RESPONSE_CREATED,
                    "formId": str(form.pk),
                    "payload": {
                        "answers": [{"fieldId": "q1", "value": "yes"}],
                        "submittedAt": response.submitted_at,
                    },
                }
            ],
        )
        self.assertEqual(summarize(form.pk), {"q1": {"yes": 1}})

    def test_draft_form_is_not_published(self) -> None:
        form = make_form(status=Form.DRAFT)
        for answers in ([{"fieldId": "q1", "value": "yes"}], [{"fieldId": "q1", "value": "maybe"}]):
            with self.subTest(answers=answers):
                with self.assertRaises(FormNotPublished):
                    submit_response(form.pk, answers, live_hub=self.live_hub)
        self.assertFalse(FormResponse.objects.exists())

    def test_unknown_form(self) -> None:
        with self.assertRaises(FormNotFound):
            submit_response(uuid.uuid4(), [], live_hub=self.live_hub)

    def test_bad_form_id(self) -> None:
        with self.assertRaises(MalformedRequest):
            submit_response("not-a-uuid", [], live_hub=self.live_hub)

    def test_storage_failure_skips_broadcast(self) -> None:
        form = make_form()
        live_hub = mock.Mock(spec=LiveHub)

        with mock.patch.object(FormResponse.objects, "create", side_effect=DatabaseError("disk full")):
            with self.assertLogs("submissions.store", level="ERROR"):
                with self.assertRaises(StorageError):
                    submit_response(form.pk, [{"fieldId": "q1", "value": "no"}], live_hub=live_hub)

        live_hub.publish.assert_not_called()

    def test_broadcast_failure_does_not_reject(self) -> None:
        form = make_form()
        live_hub = mock.Mock(spec=LiveHub)
        live_hub.publish.side_effect = RuntimeError("hub exploded")

        with self.assertLogs("submissions.ingestion", level="ERROR"):
            response = submit_response(form.pk, [{"fieldId": "q1", "value": "no"}], live_hub=live_hub)

        self.assertTrue(FormResponse.objects.filter(pk=response.pk).exists())

    def test_concurrent_submissions_are_independent(self) -> None:
        form = make_form(
            fields=[
                {"key": "name", "field_type": FormField.TEXT, "required": True},
                {"key": "score", "field_type": FormField.RATING, "required": True},
            ]
        )
        store = InMemoryResponseStore(form)
        self.live_hub.subscribe(str(form.pk), self.observer)
        total = 40

        def submit(n: int) -> FormResponse:
            return submit_response(
                form.pk,
                [{"fieldId": "name", "value": f"respondent-{n}"}, {"fieldId": "score", "value": n % 5 + 1}],
                store=store,
                live_hub=self.live_hub,
            )

        with ThreadPoolExecutor(max_workers=10) as pool:
            responses = list(pool.map(submit, range(total)))

        self.assertEqual(len({response.pk for response in responses}), total)
        self.assertEqual(len(self.observer.events), total)
        buckets = summarize(form.pk, store=store)
        self.assertEqual(sum(buckets["name"].values()), total)
        self.assertEqual(sum(buckets["score"].values()), total)
        self.assertEqual(buckets["score"], {str(n): total // 5 for n in range(1, 6)})


class ReportingTests(TestCase):
    def setUp(self) -> None:
        self.form = make_form(
            fields=[
                MCQ_FIELD,
                {"key": "tags", "field_type": FormField.CHECKBOX, "options": ["a", "b"]},
                {"key": "score", "field_type": FormField.RATING},
            ]
        )
        self.live_hub = LiveHub()
        submit_response(
            self.form.pk,
            [{"fieldId": "q1", "value": "yes"}, {"fieldId": "tags", "value": ["a", "b"]}, {"fieldId": "score", "value": 4}],
            live_hub=self.live_hub,
        )
        submit_response(
            self.form.pk,
            [{"fieldId": "q1", "value": "no"}, {"fieldId": "score", "value": 4.0}],
            live_hub=self.live_hub,
        )

    def test_summarize_counts_canonical_values(self) -> None:
        self.assertEqual(
            summarize(self.form.pk),
            {"q1": {"yes": 1, "no": 1}, "tags": {"a|b": 1}, "score": {"4": 2}},
        )

    def test_summarize_is_idempotent(self) -> None:
        self.assertEqual(summarize(self.form.pk), summarize(str(self.form.pk)))

    def test_summarize_ignores_other_forms(self) -> None:
        other = make_form()
        submit_response(other.pk, [{"fieldId": "q1", "value": "yes"}], live_hub=self.live_hub)
        self.assertEqual(summarize(self.form.pk)["q1"], {"yes": 1, "no": 1})
        self.assertEqual(summarize(other.pk), {"q1": {"yes": 1}})

    def test_export_rows(self) -> None:
        rows = sorted(export_rows(self.form.pk), key=lambda row: (row[1], row[2]))
        self.assertEqual([row[1:] for row in rows], [
            ("q1", "no"),
            ("q1", "yes"),
            ("score", "4"),
            ("score", "4"),
            ("tags", "a|b"),
        ])
        self.assertTrue(all(row[0].endswith("Z") for row in rows))


class ResponseApiTests(TestCase):
    def setUp(self) -> None:
        self.client = APIClient()

    def _submit(self, form_id: Any, answers: List[Dict[str, Any]]):
        return self.client.post(
            reverse("response-submit"),
            {"formId": str(form_id), "answers": answers},
            format="json",
            HTTP_USER_AGENT="test-agent",
            REMOTE_ADDR="127.0.0.1",
        )

    def test_health(self) -> None:
        response = self.client.get(reverse("form-health"))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["status"], "ok")

    def test_submit_then_summarize(self) -> None:
        form = make_form()

        rejected = self._submit(form.pk, [{"fieldId": "q1", "value": "maybe"}])
        self.assertEqual(rejected.status_code, 400)
        self.assertEqual(rejected.data["kind"], AnswerValidationError.INVALID_OPTION)
        self.assertEqual(rejected.data["fieldId"], "q1")

        accepted = self._submit(form.pk, [{"fieldId": "q1", "value": "yes"}])
        self.assertEqual(accepted.status_code, 201)
        self.assertEqual(accepted.data["formId"], str(form.pk))
        self.assertEqual(FormResponse.objects.get().meta, {"ip": "127.0.0.1", "ua": "test-agent"})

        summary = self.client.get(reverse("analytics-summary", args=[form.pk]))
        self.assertEqual(summary.status_code, 200)
        self.assertEqual(summary.data, {"buckets": {"q1": {"yes": 1}}})

    def test_draft_form_rejected(self) -> None:
        form = make_form(status=Form.DRAFT)
        response = self._submit(form.pk, [{"fieldId": "q1", "value": "yes"}])
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.data["detail"].code, "form_not_published")

    def test_unknown_form_rejected(self) -> None:
        response = self._submit(uuid.uuid4(), [])
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.data["detail"].code, "form_not_found")

    def test_malformed_requests_rejected_before_storage(self) -> None:
        form = make_form()
        bad_payloads = [
            {"formId": "nope", "answers": []},
            {"formId": str(form.pk)},
            {"formId": str(form.pk), "answers": [{"value": "yes"}]},
            {"formId": str(form.pk), "answers": "yes"},
        ]
        for payload in bad_payloads:
            with self.subTest(payload=payload):
                response = self.client.post(reverse("response-submit"), payload, format="json")
                self.assertEqual(response.status_code, 400)
                self.assertEqual(response.data["detail"].code, "malformed_request")
                self.assertIn("errors", response.data)
        self.assertFalse(FormResponse.objects.exists())

    def test_field_ids_are_matched_exactly(self) -> None:
        form = make_form(fields=[{"key": "q1", "field_type": FormField.MCQ, "options": ["yes", "no"]}])
        for field_id in (" q1", "q1 ", ""):
            with self.subTest(field_id=field_id):
                response = self._submit(form.pk, [{"fieldId": field_id, "value": "yes"}])
                self.assertEqual(response.status_code, 400)
                self.assertEqual(response.data["kind"], AnswerValidationError.UNKNOWN_FIELD)
                self.assertEqual(response.data["fieldId"], field_id)
        self.assertFalse(FormResponse.objects.exists())

    def test_summary_for_missing_form(self) -> None:
        response = self.client.get(reverse("analytics-summary", args=[uuid.uuid4()]))
        self.assertEqual(response.status_code, 404)

    def test_export_csv(self) -> None:
        form = make_form(
            fields=[MCQ_FIELD, {"key": "tags", "field_type": FormField.CHECKBOX, "options": ["x", "y"]}]
        )
        self._submit(form.pk, [{"fieldId": "q1", "value": "yes"}, {"fieldId": "tags", "value": ["x", "y"]}])

        response = self.client.get(reverse("form-export", args=[form.pk]))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response["Content-Type"], "text/csv")
        self.assertIn(f'form_{form.pk}_responses.csv', response["Content-Disposition"])
        body = b"".join(response.streaming_content).decode()
        rows = list(csv.reader(io.StringIO(body)))
        self.assertEqual(rows[0], ["submittedAt", "fieldId", "value"])
        self.assertEqual(sorted(row[1:] for row in rows[1:]), [["q1", "yes"], ["tags", "x|y"]])

    def test_live_requires_form_id(self) -> None:
        response = self.client.get(reverse("response-live"))
        self.assertEqual(response.status_code, 400)
        self.assertEqual(json.loads(response.content), {"error": "missing formId"})

    @override_settings(FORM_LIVE_KEEPALIVE_SECONDS=0.01, FORM_LIVE_QUEUE_SIZE=1)
    def test_live_stream_receives_new_responses(self) -> None:
        form = make_form()
        response = self.client.get(reverse("response-live"), {"formId": str(form.pk)})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response["Content-Type"], "text/event-stream")

        chunks = iter(response.streaming_content)
        self.assertEqual(next(chunks), b": connected\n\n")
        self.assertEqual(hub.observer_count(str(form.pk)), 1)

        self._submit(form.pk, [{"fieldId": "q1", "value": "no"}])
        lines = next(chunks).decode().strip().split("\n")
        self.assertEqual(lines[0], f"event: {RESPONSE_CREATED}")
        event = json.loads(lines[1][len("data: "):])
        self.assertEqual(event["type"], RESPONSE_CREATED)
        self.assertEqual(event["formId"], str(form.pk))
        self.assertEqual(event["payload"]["answers"], [{"fieldId": "q1", "value": "no"}])
        self.assertIn("submittedAt", event["payload"])

        self.assertEqual(next(chunks), b": keep-alive\n\n")

        # The second unread event overflows the queue and drops the observer.
        self._submit(form.pk, [{"fieldId": "q1", "value": "yes"}])
        with self.assertLogs("submissions.hub", level="WARNING"):
            self._submit(form.pk, [{"fieldId": "q1", "value": "no"}])
        with self.assertRaises(StopIteration):
            next(chunks)
        self.assertEqual(hub.observer_count(str(form.pk)), 0)
        self.assertEqual(FormResponse.objects.count(), 3)
