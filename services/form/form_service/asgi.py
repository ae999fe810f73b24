"""ASGI config for the form service.

The live updates view hands ASGI servers an asynchronous event stream, so
server-sent events are pushed as they happen here as well as under WSGI.
"""
import os

from django.core.asgi import get_asgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "form_service.settings")

application = get_asgi_application()
