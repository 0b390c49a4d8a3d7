import os
from celery import Celery
from celery.schedules import crontab

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'gymops.settings')

app = Celery('gymops')
app.config_from_object('django.conf:settings', namespace='CELERY')
app.autodiscover_tasks()

# Both jobs run daily; each gym's AutoRenewalConfig decides whether the
# monthly renewal batch actually does anything that day.
app.conf.beat_schedule = {
    'run-monthly-auto-renewals': {
        'task': 'memberships.tasks.run_monthly_auto_renewals',
        'schedule': crontab(hour=3, minute=0),
    },
    'expire-lapsed-memberships': {
        'task': 'memberships.tasks.expire_lapsed_memberships_task',
        'schedule': crontab(hour=0, minute=30),
    },
}
