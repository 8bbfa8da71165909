# WSGI (Web Server Gateway Interface) configuration

# Plain HTTP only; the chat WebSocket needs ASGI (see asgi.py)
#
# Run: gunicorn config.wsgi:application --bind 0.0.0.0:8000 --workers 4
# ==============================================================================

import os
from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

application = get_wsgi_application()
