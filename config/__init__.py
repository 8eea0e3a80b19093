"""Top-level package for Django configuration.

Settings modules for each environment, the Celery application and the
WSGI/ASGI entry points of the fleet availability engine.
"""

# Import the Celery application as soon as Django starts. Without this
# the shared task registry will not be populated.
from .celery import app as celery_app  # noqa: F401
