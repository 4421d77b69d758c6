# Celery instance is defined in fl_project/celery.py
# It creates celery_app object and points it to Django settings
from .celery import celery_app

__all__ = ("celery_app",)

""" Workers start with "celery -A fl_project worker -l info",
    beat with "celery -A fl_project beat -l info". """
