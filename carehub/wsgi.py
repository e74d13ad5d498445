"""
WSGI config for the CareHub backend.

Exposes the WSGI callable as ``application`` for gunicorn/uwsgi.  Use
``carehub.asgi`` instead when websocket notifications are required.
"""
import os

from django.core.wsgi import get_wsgi_application  # type: ignore

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'carehub.settings')

application = get_wsgi_application()
