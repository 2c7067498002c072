"""
WSGI config for the socialapi project.

gunicorn loads ``application`` from here (see gunicorn.conf.py).
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "socialapi.settings")

application = get_wsgi_application()
