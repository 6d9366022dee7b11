"""
ASGI config for the CSA project.

Serve with any ASGI server (Uvicorn, Daphne).
"""
import os

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

from django.core.asgi import get_asgi_application

application = get_asgi_application()
