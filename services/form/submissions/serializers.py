"""Serializers for response ingestion."""
from __future__ import annotations

from rest_framework import serializers

from .models import FormResponse


class AnswerSerializer(serializers.Serializer):
    fieldId = serializers.CharField(max_length=255, allow_blank=True, trim_whitespace=False)
    value = serializers.JSONField(allow_null=True)


class SubmissionRequestSerializer(serializers.Serializer):
    formId = serializers.UUIDField()
    answers = AnswerSerializer(many=True)


class FormResponseSerializer(serializers.ModelSerializer):
    formId = serializers.UUIDField(source="form_id", read_only=True)
    submittedAt = serializers.DateTimeField(source="submitted_at", read_only=True)

    class Meta:
        model = FormResponse
        fields = ["id", "formId", "submittedAt", "answers"]
        read_only_fields = ["id", "answers"]
