"""
Celery application configuration.

This is the main Celery app for the EventConnect backend.
It handles mirror synchronization, the periodic mirror reconciliation
and other background jobs.

Usage:
    # Start worker
    celery -A eventconnect_backend worker -l INFO

    # Start beat scheduler (for periodic tasks)
    celery -A eventconnect_backend beat -l INFO

    # Start both (development only)
    celery -A eventconnect_backend worker -B -l INFO
"""
import os

from celery import Celery

# Set default Django settings
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "eventconnect_backend.settings")

# Create Celery app
app = Celery("eventconnect_backend")

# Load config from Django settings
app.config_from_object("django.conf:settings", namespace="CELERY")

# Auto-discover tasks from all installed apps
app.autodiscover_tasks()
