# gunicorn.conf.py
import os

wsgi_app = "socialapi.wsgi:application"
bind = os.getenv("GUNICORN_BIND", "0.0.0.0:8000")

# Sync workers; image uploads to the media store can be slow
workers = int(os.getenv("GUNICORN_WORKERS", 2))
timeout = int(os.getenv("GUNICORN_TIMEOUT", 120))

# Access and error logs go to stdout/stderr next to Django's console logging
accesslog = "-"
errorlog = "-"
loglevel = os.getenv("GUNICORN_LOG_LEVEL", "info")

proc_name = "socialapi"
