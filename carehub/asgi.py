"""
ASGI config for the CareHub backend.

Wires both HTTP (Django) and WebSocket (Channels).
Django must be configured before any model-dependent import.
"""
import os

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "carehub.settings")

import django  # noqa: E402
django.setup()  # noqa: E402

from django.core.asgi import get_asgi_application  # noqa: E402
from channels.routing import ProtocolTypeRouter, URLRouter  # noqa: E402
from django.urls import path  # noqa: E402

from clinic.realtime.consumers import NotificationConsumer  # noqa: E402
from clinic.realtime.middleware import JWTQueryAuthMiddleware  # noqa: E402

django_asgi_app = get_asgi_application()

websocket_urlpatterns = [
    path("ws/notifications/", NotificationConsumer.as_asgi()),
]

application = ProtocolTypeRouter({
    "http": django_asgi_app,
    "websocket": JWTQueryAuthMiddleware(URLRouter(websocket_urlpatterns)),
})
