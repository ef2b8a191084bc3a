"""
WSGI config for the radiology project.

It exposes the WSGI callable as a module-level variable named ``application``.
Real-time delivery needs the ASGI entrypoint (``radiology.asgi``); under WSGI
workflow publishes still go to the configured channel layer.
"""
import os

from django.core.wsgi import get_wsgi_application  # type: ignore

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'radiology.settings')

application = get_wsgi_application()
