"""Serializers for the form service."""
from __future__ import annotations

from typing import Any, Dict, List

from django.db import transaction
from rest_framework import serializers

from .models import Form, FormField


class VisibleIfSerializer(serializers.Serializer):
    """Conditional visibility rule, stored verbatim for the presenting client."""

    fieldId = serializers.CharField(max_length=255)
    operator = serializers.CharField(max_length=32)
    value = serializers.JSONField(required=False, allow_null=True)


class FormFieldSerializer(serializers.ModelSerializer):
    id = serializers.CharField(source="key", max_length=255, trim_whitespace=False)
    type = serializers.ChoiceField(source="field_type", choices=FormField.FIELD_TYPES)
    options = serializers.ListField(
        child=serializers.CharField(allow_blank=True), required=False, default=list
    )
    min = serializers.IntegerField(source="min_value", required=False, allow_null=True)
    max = serializers.IntegerField(source="max_value", required=False, allow_null=True)
    visibleIf = VisibleIfSerializer(source="visible_if", required=False, allow_null=True)

    class Meta:
        model = FormField
        fields = [
            "id",
            "type",
            "label",
            "required",
            "options",
            "min",
            "max",
            "placeholder",
            "visibleIf",
        ]
        extra_kwargs = {
            "label": {"required": False, "allow_blank": True},
            "placeholder": {"required": False, "allow_blank": True},
        }


class FormSerializer(serializers.ModelSerializer):
    title = serializers.CharField(max_length=255, required=False, allow_blank=True)
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)
    updatedAt = serializers.DateTimeField(source="updated_at", read_only=True)
    fields = FormFieldSerializer(many=True, required=False)

    class Meta:
        model = Form
        fields = [
            "id",
            "title",
            "description",
            "status",
            "createdAt",
            "updatedAt",
            "fields",
        ]
        read_only_fields = ["status"]

    def validate_title(self, value: str) -> str:
        return value.strip() or Form.UNTITLED

    def validate_fields(self, value: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        seen = set()
        for field in value:
            key = field["key"]
            if key in seen:
                raise serializers.ValidationError(f"Duplicate field id: {key}")
            seen.add(key)
        return value

    @transaction.atomic
    def create(self, validated_data):  # type: ignore[override]
        fields = validated_data.pop("fields", [])
        form = Form.objects.create(status=Form.DRAFT, **validated_data)
        for index, field in enumerate(fields):
            FormField.objects.create(form=form, order=index, **field)
        return form

    @transaction.atomic
    def update(self, instance, validated_data):  # type: ignore[override]
        fields = validated_data.pop("fields", None)
        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        instance.save()

        if fields is not None:
            instance.fields.all().delete()
            for index, field in enumerate(fields):
                FormField.objects.create(form=instance, order=index, **field)
        return instance
