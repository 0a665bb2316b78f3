"""WSGI config for fediweb."""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "fediweb.settings")

application = get_wsgi_application()
