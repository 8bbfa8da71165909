# ASGI (Asynchronous Server Gateway Interface) configuration

# Serves both protocols of the CRM:
# - HTTP: the JSON API (Django views)
# - WebSocket: live lead chat (ws/chat/<lead_id>/)
#
# Run: daphne config.asgi:application --bind 0.0.0.0 --port 8000
# ==============================================================================

import os
from django.core.asgi import get_asgi_application
from channels.routing import ProtocolTypeRouter, URLRouter
from channels.auth import AuthMiddlewareStack

# Set the default Django settings module
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

# Initialize Django ASGI application early
# This ensures the AppRegistry is populated before importing code that may import ORM models
django_asgi_app = get_asgi_application()

# Import routing after Django setup
from apps.whatsapp.routing import websocket_urlpatterns  # noqa: E402


# ProtocolTypeRouter dispatches connections based on protocol type
application = ProtocolTypeRouter({
    'http': django_asgi_app,

    # AuthMiddlewareStack puts the session user in scope['user']
    'websocket': AuthMiddlewareStack(
        URLRouter(websocket_urlpatterns)
    ),
})
