"""
ASGI config for formparity project.

The API views are synchronous. When a request asks for async validators, the view
runs them through asgiref's async_to_sync: under ASGI that hands them back to the
server's event loop from the view's worker thread; under WSGI and in tests each call
gets a fresh loop.
"""

import os

from django.core.asgi import get_asgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'formparity.settings')

application = get_asgi_application()
