"""
Celery configuration for the RankRent back office.
"""
import os
from celery import Celery
from celery.schedules import crontab

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

app = Celery('config')
app.config_from_object('django.conf:settings', namespace='CELERY')
app.autodiscover_tasks()

# Celery Beat Schedule
app.conf.beat_schedule = {
    'check-due-keywords': {
        'task': 'apps.seo.tasks.check_due_keywords',
        'schedule': crontab(minute='0'),  # Hourly
    },
    'cleanup-serpapi-keys': {
        'task': 'apps.seo.tasks.cleanup_serpapi_keys',
        'schedule': crontab(hour='3', minute='0'),
    },
    'reset-free-minutes': {
        'task': 'apps.telephony.tasks.reset_free_minutes',
        'schedule': crontab(day_of_month='1', hour='0', minute='5'),
    },
    'renew-phone-numbers': {
        'task': 'apps.telephony.tasks.renew_phone_numbers',
        'schedule': crontab(hour='1', minute='0'),
    },
}
