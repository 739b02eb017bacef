"""
Canteen Service — Celery application

Redis is broker and result backend. The worker (canteen-worker) consumes
only the ``simulations`` queue: what-if runs are CPU-bound and can take a
while for long horizons, so they never share the request path.
"""
from celery import Celery

from canteen.core.config import get_settings

settings = get_settings()

SIMULATION_QUEUE = "simulations"

celery_app = Celery(
    "canteen",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["canteen.tasks.simulation_tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone=settings.LOCAL_TIMEZONE,
    enable_utc=True,
    task_routes={"run_queue_simulation": {"queue": SIMULATION_QUEUE}},
    task_default_queue=SIMULATION_QUEUE,
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_soft_time_limit=60,
    task_time_limit=90,
    task_track_started=True,
    result_expires=3600,  # seconds
)
