"""WSGI config for Party2Go.

Exposes the WSGI application for Django's runserver and production WSGI
servers.
"""

import os
from django.core.wsgi import get_wsgi_application  # type: ignore

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings.dev')

application = get_wsgi_application()
