"""WSGI config for the joben project."""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "joben.settings")

application = get_wsgi_application()
