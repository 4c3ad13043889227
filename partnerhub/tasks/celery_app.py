from celery import Celery
from celery.schedules import crontab
from celery.signals import worker_process_init, worker_ready

from partnerhub.common.logging import setup_logging
from partnerhub.config import settings

app = Celery(
    "partnerhub",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
)

app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_routes={
        "partnerhub.tasks.report_tasks.*": {"queue": "reports"},
    },
    beat_schedule={
        "trigger-scheduled-reports": {
            "task": "partnerhub.tasks.report_tasks.trigger_scheduled_reports",
            "schedule": crontab(),  # every minute
        },
        "recalculate-report-schedules": {
            "task": "partnerhub.tasks.report_tasks.recalculate_report_schedules",
            "schedule": crontab(hour=0, minute=5),
        },
    },
)

app.autodiscover_tasks(["partnerhub.tasks.report_tasks"])


@worker_process_init.connect
def _init_worker_logging(**kwargs):
    setup_logging()


@worker_ready.connect
def _recalculate_schedules_on_start(**kwargs):
    app.send_task("partnerhub.tasks.report_tasks.recalculate_report_schedules")
