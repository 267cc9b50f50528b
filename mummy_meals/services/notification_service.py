# mummy_meals/services/notification_service.py
from kombu.exceptions import OperationalError

from mummy_meals.celery_worker import celery_app
from mummy_meals.utils.logging import get_logger

logger = get_logger(__name__)

STATUS_MESSAGES = {
    "placed": ("Order Placed!", "Your order{for_title} has been placed successfully."),
    "preparing": ("Chef is Cooking!", "Your order{of_title} is being prepared with love."),
    "ready": ("Order Ready!", "Your order{of_title} is ready for pickup!"),
    "picked_up": ("On The Way!", "Your delivery partner has picked up your order. Track live location!"),
    "delivered": ("Delivered!", "Your order{of_title} has been delivered. Enjoy your meal!"),
    "cancelled": ("Order Cancelled", "Your order{of_title} has been cancelled."),
}


def build_status_message(status: str, menu_title: str | None = None) -> dict:
    title, body = STATUS_MESSAGES.get(
        status, ("Order Update", "Your order status has been updated.")
    )
    body = body.format(
        for_title=f" for {menu_title}" if menu_title else "",
        of_title=f" of {menu_title}" if menu_title else "",
    )
    return {"title": title, "body": body, "tag": f"order-{status}"}


class NotificationService:
    """
    Powiadomienia klienta o zmianie statusu zamówienia.
    Używa Celery do asynchronicznego przetwarzania.
    """

    @staticmethod
    def send_order_status_notification(
        customer_id: int, order_id: int, status: str, menu_title: str | None = None
    ):
        #zmiana statusu jest juz zacommitowana, brak brokera nie moze jej cofnac
        try:
            send_order_status_notification_task.delay(customer_id, order_id, status, menu_title)
        except OperationalError as e:
            logger.error(f"Could not enqueue notification for order {order_id}: {e}")


@celery_app.task(name="mummy_meals.services.notification_service.send_order_status_notification_task")
def send_order_status_notification_task(
    customer_id: int, order_id: int, status: str, menu_title: str | None = None
):
    """
    Celery task - w prawdziwym systemie wysłałby push/SMS.
    Teraz tylko loguje.
    """
    message = build_status_message(status, menu_title)
    logger.info(f"[NOTIFICATION] User {customer_id}: Order {order_id} {message['title']} {message['body']}")

    return {"customer_id": customer_id, "order_id": order_id, "status": status, "message": message}
