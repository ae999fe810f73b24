"""Database models for collected form responses."""
from __future__ import annotations

import uuid

from django.db import models
from django.utils import timezone


class FormResponse(models.Model):
    """One respondent's submission against a published form.

    Rows are written once by the ingestion pipeline and never updated.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    form = models.ForeignKey(
        "forms.Form",
        on_delete=models.PROTECT,
        related_name="responses",
    )
    submitted_at = models.DateTimeField(default=timezone.now)
    answers = models.JSONField(default=list)
    meta = models.JSONField(default=dict, blank=True)

    class Meta:
        ordering = ["-submitted_at"]
        indexes = [
            models.Index(fields=["form", "submitted_at"], name="submissions_form_sub_idx"),
        ]

    def __str__(self) -> str:
        return f"Response {self.id} to {self.form_id}"
