# mummy_meals/celery_worker.py
from celery import Celery

from mummy_meals.utils.settings import (
    CELERY_BROKER_URL,
    CELERY_RESULT_BACKEND,
    CELERY_TASK_ALWAYS_EAGER,
)

celery_app = Celery(
    "mummy_meals",
    broker=CELERY_BROKER_URL,
    backend=CELERY_RESULT_BACKEND,
)

# WAŻNE: Explicite importuj taski, żeby Celery je zarejestrował
celery_app.conf.imports = (
    "mummy_meals.tasks.reconcile",
    "mummy_meals.services.notification_service",
)

# Konfiguracja beat schedule
celery_app.conf.beat_schedule = {
    "reconcile-checkout-sessions-every-minute": {
        "task": "mummy_meals.tasks.reconcile.reconcile_checkout_sessions_task",
        "schedule": 60.0,  # co 60 sekund
    },
}

celery_app.conf.timezone = "UTC"
celery_app.conf.task_always_eager = CELERY_TASK_ALWAYS_EAGER
