"""Route registration for response endpoints."""
from __future__ import annotations

from django.urls import path

from .views import ResponseSubmissionView, analytics_summary, export_csv, health, live_updates

urlpatterns = [
    path("healthz/", health, name="form-health"),
    path("responses/", ResponseSubmissionView.as_view(), name="response-submit"),
    path("live/", live_updates, name="response-live"),
    path("analytics/<uuid:form_id>/summary/", analytics_summary, name="analytics-summary"),
    path("forms/<uuid:form_id>/export/", export_csv, name="form-export"),
]
