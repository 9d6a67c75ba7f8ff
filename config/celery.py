import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings.dev")

app = Celery("party2go")

# Beat schedule lives in settings.CELERY_BEAT_SCHEDULE
app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()
