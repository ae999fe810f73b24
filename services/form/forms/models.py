"""Database models for the form service."""
from __future__ import annotations

import uuid

from django.db import models


class Form(models.Model):
    """A form definition owned by its creator."""

    DRAFT = "draft"
    PUBLISHED = "published"

    STATUS_CHOICES = [
        (DRAFT, "Draft"),
        (PUBLISHED, "Published"),
    ]

    UNTITLED = "Untitled Form"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    title = models.CharField(max_length=255, default=UNTITLED)
    description = models.TextField(blank=True)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=DRAFT)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-updated_at", "id"]
        indexes = [models.Index(fields=["status"], name="forms_form_status_idx")]

    def __str__(self) -> str:
        return f"{self.title} ({self.status})"

    @property
    def is_published(self) -> bool:
        return self.status == self.PUBLISHED

    def publish(self) -> None:
        self.status = self.PUBLISHED
        self.save(update_fields=["status", "updated_at"])


class FormField(models.Model):
    """A question that belongs to a form."""

    TEXT = "text"
    TEXTAREA = "textarea"
    MCQ = "mcq"
    CHECKBOX = "checkbox"
    RATING = "rating"

    FIELD_TYPES = [
        (TEXT, "Text"),
        (TEXTAREA, "Text area"),
        (MCQ, "Multiple choice"),
        (CHECKBOX, "Checkboxes"),
        (RATING, "Rating"),
    ]

    DEFAULT_RATING_MIN = 1
    DEFAULT_RATING_MAX = 5

    form = models.ForeignKey(Form, related_name="fields", on_delete=models.CASCADE)
    key = models.CharField(max_length=255)
    label = models.CharField(max_length=255, blank=True)
    field_type = models.CharField(max_length=32, choices=FIELD_TYPES)
    required = models.BooleanField(default=False)
    order = models.PositiveIntegerField(default=0)
    options = models.JSONField(default=list, blank=True)
    min_value = models.IntegerField(null=True, blank=True)
    max_value = models.IntegerField(null=True, blank=True)
    placeholder = models.CharField(max_length=255, blank=True)
    visible_if = models.JSONField(null=True, blank=True)

    class Meta:
        ordering = ["order", "id"]
        unique_together = ("form", "key")

    def __str__(self) -> str:
        return f"{self.label or self.key} ({self.field_type})"

    @property
    def rating_bounds(self) -> tuple[int, int]:
        low = self.DEFAULT_RATING_MIN if self.min_value is None else self.min_value
        high = self.DEFAULT_RATING_MAX if self.max_value is None else self.max_value
        return low, high
