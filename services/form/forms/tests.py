"""API tests for form definitions."""
from __future__ import annotations

from django.test import TestCase
from django.urls import reverse
from rest_framework.test import APIClient

from .models import Form, FormField


class FormApiTests(TestCase):
    def setUp(self) -> None:
        self.client = APIClient()

    def _create(self, **overrides):
        payload = {
            "title": "Customer Feedback",
            "description": "Tell us how we did.",
            "fields": [
                {
                    "id": "name",
                    "type": "text",
                    "label": "Your name",
                    "required": True,
                    "placeholder": "Jane Doe",
                },
                {
                    "id": "recommend",
                    "type": "mcq",
                    "label": "Would you recommend us?",
                    "options": ["yes", "no"],
                    "visibleIf": {"fieldId": "name", "operator": "neq", "value": ""},
                },
                {"id": "score", "type": "rating", "min": 1, "max": 10},
            ],
        }
        payload.update(overrides)
        return self.client.post(reverse("form-list"), payload, format="json")

    def test_create_and_list_forms(self) -> None:
        response = self._create()
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["status"], Form.DRAFT)
        self.assertEqual([field["id"] for field in response.data["fields"]], ["name", "recommend", "score"])

        response = self.client.get(reverse("form-list"))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.data), 1)
        form = Form.objects.get()
        self.assertEqual(form.fields.count(), 3)
        self.assertEqual(FormField.objects.get(key="score").rating_bounds, (1, 10))

    def test_visibility_rule_round_trips(self) -> None:
        form_id = self._create().data["id"]

        response = self.client.get(reverse("form-detail", args=[form_id]))
        self.assertEqual(response.status_code, 200)
        recommend = response.data["fields"][1]
        self.assertEqual(recommend["visibleIf"], {"fieldId": "name", "operator": "neq", "value": ""})
        self.assertIsNone(response.data["fields"][0]["visibleIf"])

    def test_blank_title_defaults(self) -> None:
        response = self._create(title="   ")
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["title"], Form.UNTITLED)

    def test_status_cannot_be_set_on_create(self) -> None:
        response = self._create(status=Form.PUBLISHED)
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["status"], Form.DRAFT)

    def test_duplicate_field_ids_rejected(self) -> None:
        response = self._create(
            fields=[
                {"id": "q1", "type": "text"},
                {"id": "q1", "type": "textarea"},
            ]
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn("fields", response.data)
        self.assertFalse(Form.objects.exists())

    def test_field_ids_are_stored_verbatim(self) -> None:
        response = self._create(fields=[{"id": " q1 ", "type": "text"}, {"id": "q1", "type": "text"}])
        self.assertEqual(response.status_code, 201)
        self.assertEqual([field["id"] for field in response.data["fields"]], [" q1 ", "q1"])
        self.assertEqual(
            list(FormField.objects.order_by("order").values_list("key", flat=True)), [" q1 ", "q1"]
        )

    def test_update_replaces_fields(self) -> None:
        created = self._create().data
        response = self.client.put(
            reverse("form-detail", args=[created["id"]]),
            {"title": "Renamed", "description": "", "fields": [{"id": "only", "type": "textarea"}]},
            format="json",
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["title"], "Renamed")
        self.assertEqual([field["id"] for field in response.data["fields"]], ["only"])
        form = Form.objects.get()
        self.assertGreaterEqual(form.updated_at, form.created_at)
        self.assertEqual(form.fields.get().field_type, FormField.TEXTAREA)

    def test_publish_form(self) -> None:
        created = self._create().data

        response = self.client.post(reverse("form-publish", args=[created["id"]]), format="json")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["status"], Form.PUBLISHED)
        form = Form.objects.get(pk=created["id"])
        self.assertTrue(form.is_published)
        self.assertGreaterEqual(form.updated_at, form.created_at)

    def test_delete_not_allowed(self) -> None:
        created = self._create().data
        response = self.client.delete(reverse("form-detail", args=[created["id"]]))
        self.assertEqual(response.status_code, 405)
        self.assertTrue(Form.objects.exists())
