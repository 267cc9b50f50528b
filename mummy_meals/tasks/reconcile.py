# mummy_meals/tasks/reconcile.py
from mummy_meals.celery_worker import celery_app
from mummy_meals.data.database import SessionLocal
from mummy_meals.services.checkout_service import CheckoutService
from mummy_meals.utils.logging import get_logger

logger = get_logger(__name__)


@celery_app.task(name="mummy_meals.tasks.reconcile.reconcile_checkout_sessions_task")
def reconcile_checkout_sessions_task():
    logger.info("Reconcile checkout sessions task started")

    db = SessionLocal()
    try:
        stats = CheckoutService(db).reconcile_open_sessions()
        logger.info(
            f"Reconciled checkout sessions: fulfilled={stats['fulfilled']} "
            f"expired={stats['expired']} pending={stats['pending']} failed={stats['failed']} "
            f"retry={stats['retry']}"
        )
        return stats
    finally:
        db.close()
