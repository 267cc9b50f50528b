# mummy_meals/domain/errors.py
"""
Wyjatki domenowe. Dziedzicza po wbudowanych (ValueError, PermissionError,
RuntimeError), routery mapuja je na kody HTTP tak jak wczesniej.
"""


class NotFoundError(ValueError):
    pass


class InvalidTransitionError(ValueError):
    pass


class EmptyCartError(ValueError):
    def __init__(self, message: str = "Cart is empty"):
        super().__init__(message)


class MenuItemUnavailableError(ValueError):
    def __init__(self, menu_item_id: int):
        super().__init__(f"Menu item {menu_item_id} is no longer available")
        self.menu_item_id = menu_item_id


class OrderConflictError(RuntimeError):
    """Warunkowy update nie trafil w zaden wiersz - ktos byl pierwszy."""

    def __init__(self, order_id: int, message: str | None = None):
        super().__init__(message or f"Order {order_id} is no longer available")
        self.order_id = order_id


class LocationSharingDisabledError(RuntimeError):
    def __init__(self, partner_id: int):
        super().__init__("Location sharing is turned off")
        self.partner_id = partner_id


class PaymentError(RuntimeError):
    pass


class PaymentNotCompletedError(PaymentError):
    def __init__(self, session_id: str, payment_status: str | None = None):
        super().__init__("Payment not successful")
        self.session_id = session_id
        self.payment_status = payment_status


class PaymentProviderError(PaymentError):
    pass


class FulfillmentInProgressError(PaymentError):
    def __init__(self, session_id: str):
        super().__init__("Fulfillment already in progress")
        self.session_id = session_id


class CartConflictError(RuntimeError):
    """Koszyk zmienil sie w trakcie checkoutu (np. rownolegle zamowienie)."""

    def __init__(self, customer_id: int, message: str | None = None):
        super().__init__(message or "Cart changed during checkout, please try again")
        self.customer_id = customer_id


class SubscriptionConflictError(RuntimeError):
    def __init__(self, subscription_id: int, message: str | None = None):
        super().__init__(message or f"Subscription {subscription_id} was changed by another request")
        self.subscription_id = subscription_id
