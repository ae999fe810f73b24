"""WSGI config for the form service."""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "form_service.settings")

application = get_wsgi_application()
