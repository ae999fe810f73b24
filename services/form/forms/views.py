"""API views for the form service."""
from __future__ import annotations

import logging

from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter, SearchFilter
from rest_framework.response import Response

from .models import Form
from .serializers import FormSerializer

logger = logging.getLogger(__name__)


class FormViewSet(viewsets.ModelViewSet):
    queryset = Form.objects.prefetch_related("fields").all()
    serializer_class = FormSerializer
    filter_backends = [SearchFilter, OrderingFilter]
    search_fields = ["title", "description"]
    ordering_fields = ["title", "updated_at"]
    ordering = ["-updated_at"]
    http_method_names = ["get", "post", "put", "patch", "head", "options"]

    @action(detail=True, methods=["post"], url_path="publish")
    def publish(self, request, *args, **kwargs):  # type: ignore[override]
        """Open a form for responses."""

        form = self.get_object()
        form.publish()
        logger.info("Form %s published", form.pk)
        serializer = self.get_serializer(form)
        return Response(serializer.data)
