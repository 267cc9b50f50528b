# mummy_meals/services/checkout_service.py
import json
import re
import uuid
from datetime import timedelta
from decimal import Decimal
from typing import Any, Dict, List, Tuple

import redis
from pydantic import ValidationError
from sqlalchemy.orm import Session

from mummy_meals.data.models.checkout_session import CheckoutSessionModel
from mummy_meals.data.models.order import OrderModel
from mummy_meals.domain.errors import (
    CartConflictError,
    EmptyCartError,
    FulfillmentInProgressError,
    MenuItemUnavailableError,
    NotFoundError,
    PaymentError,
    PaymentNotCompletedError,
    PaymentProviderError,
)
from mummy_meals.domain.schemas import SESSION_ID_PATTERN, ShippingDetails
from mummy_meals.domain.session import AuthSession
from mummy_meals.domain.status import OrderStatus, PaymentMethod, Role
from mummy_meals.realtime.feed import ChangeFeed, ChangeOp, Topic, get_change_feed
from mummy_meals.repos.cart_repo import CartRepo
from mummy_meals.repos.checkout_repo import CheckoutRepo
from mummy_meals.repos.order_repo import OrderRepo
from mummy_meals.services.lock_service import LockService
from mummy_meals.services.notification_service import NotificationService
from mummy_meals.services.order_service import OrderService, serialize_order
from mummy_meals.services.payment_client import PaymentClient
from mummy_meals.utils.clock import as_utc, utcnow
from mummy_meals.utils.logging import get_logger
from mummy_meals.utils.settings import (
    APP_BASE_URL,
    CHECKOUT_LOCK_TTL_SECONDS,
    CHECKOUT_RECONCILE_AFTER_SECONDS,
    CHECKOUT_SESSION_TTL_SECONDS,
    PAYMENT_CURRENCY,
)

logger = get_logger(__name__)

_SESSION_ID_RE = re.compile(SESSION_ID_PATTERN)

OPEN = "open"
FULFILLED = "fulfilled"
EXPIRED = "expired"
#oplacona, ale zamowien nie da sie utworzyc (do zwrotu)
FAILED = "failed"

#po tych bledach sesja zostaje open i wraca w kolejnej rundzie reconcile
TRANSIENT_FULFILL_ERRORS = (
    FulfillmentInProgressError,
    PaymentProviderError,
    CartConflictError,
    redis.RedisError,
)


def to_minor_units(amount) -> int:
    #provider liczy w paisa
    return int((Decimal(str(amount)) * 100).quantize(Decimal("1")))


class CheckoutService:
    """
    Zamiana koszyka na zamowienia (materializacja).

    -COD: od razu materialize
    -karta: sesja u providera, potem fulfill (strona powrotu / reconcile)
    -fulfill jest idempotentny: wiersz checkout_sessions przechodzi open -> fulfilled
     warunkowym UPDATE w tej samej transakcji co inserty zamowien
    """

    def __init__(
        self,
        db: Session,
        payment_client: PaymentClient | None = None,
        lock_service: LockService | None = None,
        feed: ChangeFeed | None = None,
        notifications: NotificationService | None = None,
        lock_timeout: float = CHECKOUT_LOCK_TTL_SECONDS,
    ):
        self.db = db
        self.cart_repo = CartRepo(db)
        self.order_repo = OrderRepo(db)
        self.checkout_repo = CheckoutRepo(db)
        self.payment = payment_client or PaymentClient()
        self.locks = lock_service or LockService()
        self.feed = feed or get_change_feed()
        self.orders = OrderService(db, feed=self.feed, notifications=notifications)
        self.lock_timeout = lock_timeout

    # =====================================================
    # MATERIALIZE
    # =====================================================
    def materialize(
        self,
        customer_id: int,
        shipping: Dict[str, Any],
        phone: str | None,
        payment_method: PaymentMethod,
        payment_session_id: str | None = None,
    ) -> Tuple[List[OrderModel], bool]:
        """
        Jedna transakcja: koszyk -> zamowienia (jedno na pozycje menu), koszyk pusty.
        Zwraca (zamowienia, created). created=False gdy sesja byla juz zrealizowana.
        """
        try:
            if payment_session_id:
                changed = self.checkout_repo.change_status(payment_session_id, OPEN, FULFILLED)
                if changed == 0:
                    checkout = self.checkout_repo.get_by_session_id(payment_session_id)
                    self.db.rollback()
                    if checkout is None:
                        raise NotFoundError(f"Checkout session {payment_session_id} not found")
                    if checkout.status == FULFILLED:
                        logger.info(f"Checkout session {payment_session_id} already fulfilled")
                        return self.order_repo.list_by_payment_session(payment_session_id), False
                    raise PaymentError(f"Checkout session {payment_session_id} is {checkout.status}")

            lines = self.cart_repo.get_lines(customer_id, for_update=True)
            if not lines:
                raise EmptyCartError()

            orders = []
            for line in lines:
                item = line.menu_item
                if item is None or not item.available:
                    raise MenuItemUnavailableError(line.menu_item_id)

                order = OrderModel(
                    customer_id=customer_id,
                    mom_id=item.mom_id,
                    menu_item_id=item.id,
                    menu_item=item,
                    quantity=line.quantity,
                    total_amount=Decimal(str(item.price)) * line.quantity,
                    status=OrderStatus.PLACED.value,
                    payment_method=PaymentMethod(payment_method).value,
                    payment_session_id=payment_session_id,
                    shipping_details=shipping,
                    customer_phone=phone,
                )
                orders.append(self.order_repo.add_order(order))

            #rownolegly checkout skonsumowal juz te linie -> nie commitujemy drugiego kompletu zamowien
            deleted = self.cart_repo.delete_lines([line.id for line in lines])
            if deleted != len(lines):
                logger.warning(
                    f"Cart of customer {customer_id} changed during checkout "
                    f"(expected {len(lines)} lines, deleted {deleted})"
                )
                raise CartConflictError(customer_id)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            f"Materialized {len(orders)} orders for customer {customer_id} "
            f"({payment_method}, session={payment_session_id})"
        )

        #eventy dopiero po commicie
        for order in orders:
            self.orders.publish_status_change(order, ChangeOp.INSERT)
        for line in lines:
            self.feed.publish_change(Topic.CART_ITEMS, ChangeOp.DELETE, line)

        return orders, True

    # =====================================================
    # CASH ON DELIVERY
    # =====================================================
    def place_cod_order(self, session: AuthSession, shipping: ShippingDetails) -> List[Dict[str, Any]]:
        session.require(Role.CUSTOMER)

        orders, _ = self.materialize(
            session.user_id,
            shipping.model_dump(),
            shipping.phone,
            PaymentMethod.CASH_ON_DELIVERY,
        )
        return [serialize_order(o) for o in orders]

    # =====================================================
    # CARD
    # =====================================================
    def create_checkout_session(
        self,
        session: AuthSession,
        shipping: ShippingDetails,
        origin: str | None = None,
    ) -> Dict[str, str]:
        session.require(Role.CUSTOMER)

        lines = self.cart_repo.get_lines(session.user_id)
        #pusty koszyk odrzucamy zanim cokolwiek pojdzie do providera
        if not lines:
            raise EmptyCartError()

        line_items = []
        total = Decimal("0.00")
        for line in lines:
            item = line.menu_item
            if item is None or not item.available:
                raise MenuItemUnavailableError(line.menu_item_id)
            total += Decimal(str(item.price)) * line.quantity
            line_items.append(
                {
                    "price_data": {
                        "currency": PAYMENT_CURRENCY,
                        "product_data": {"name": item.title},
                        "unit_amount": to_minor_units(item.price),
                    },
                    "quantity": line.quantity,
                }
            )

        base = (origin or APP_BASE_URL).rstrip("/")
        metadata = {
            "user_id": str(session.user_id),
            "shipping_details": json.dumps(shipping.model_dump()),
            "customer_phone": shipping.phone,
        }
        data = self.payment.create_checkout_session(
            line_items,
            success_url=f"{base}/payment-success?session_id={{CHECKOUT_SESSION_ID}}",
            cancel_url=f"{base}/payment-cancel",
            metadata=metadata,
        )

        session_id = data.get("id")
        if not session_id:
            raise PaymentProviderError("Payment provider returned no session id")

        try:
            self.checkout_repo.create(
                CheckoutSessionModel(
                    session_id=session_id,
                    customer_id=session.user_id,
                    status=OPEN,
                    amount_total=total,
                )
            )
            self.checkout_repo.commit()
        except Exception:
            self.checkout_repo.rollback()
            raise

        logger.info(f"Checkout session {session_id} opened for customer {session.user_id}, total {total}")
        return {"sessionId": session_id, "url": data.get("url") or ""}

    def verify_session(self, session_id: str) -> Dict[str, str]:
        self._check_session_id(session_id)
        data = self.payment.retrieve_checkout_session(session_id)
        status = data.get("payment_status")
        if status != "paid":
            raise PaymentNotCompletedError(session_id, status)
        return {"status": status, "session_id": session_id}

    def fulfill(self, session_id: str) -> Tuple[List[OrderModel], bool]:
        self._check_session_id(session_id)

        data = self.payment.retrieve_checkout_session(session_id)
        if data.get("payment_status") != "paid":
            raise PaymentNotCompletedError(session_id, data.get("payment_status"))

        customer_id, shipping, phone = self._parse_metadata(data.get("metadata") or {})

        owner = uuid.uuid4().hex
        acquired = self.locks.wait_for_checkout_lock(
            session_id, owner, CHECKOUT_LOCK_TTL_SECONDS, self.lock_timeout
        )
        if not acquired:
            raise FulfillmentInProgressError(session_id)

        try:
            checkout = self.checkout_repo.get_by_session_id(session_id)
            if checkout is None:
                #sesja oplacona, ale wiersz nie zostal zapisany (np. padl proces po wywolaniu providera)
                logger.warning(f"Recording missing checkout session {session_id}")
                self.checkout_repo.create(
                    CheckoutSessionModel(
                        session_id=session_id,
                        customer_id=customer_id,
                        status=OPEN,
                        amount_total=Decimal(str(data.get("amount_total") or 0)) / 100,
                    )
                )
                self.checkout_repo.commit()
            elif checkout.customer_id != customer_id:
                raise PaymentError("Checkout session does not belong to this customer")

            return self.materialize(
                customer_id,
                shipping,
                phone,
                PaymentMethod.CARD,
                payment_session_id=session_id,
            )
        finally:
            try:
                self.locks.release_checkout_lock(session_id, owner)
            except redis.RedisError as e:
                #lock i tak wygasnie po CHECKOUT_LOCK_TTL_SECONDS
                logger.warning(f"Could not release checkout lock for {session_id}: {e}")

    # =====================================================
    # RECONCILE
    # =====================================================
    def reconcile_open_sessions(self, now=None) -> Dict[str, int]:
        """
        Sesje open starsze niz CHECKOUT_RECONCILE_AFTER_SECONDS:
        oplacone -> fulfill (zgubiony powrot klienta), za stare -> expired.

        Oplacona sesja, ktorej nie da sie zrealizowac (np. pusty koszyk),
        przechodzi do failed i wymaga zwrotu. Bledy przejsciowe zostawiaja ja
        open do kolejnej rundy, najdluzej do CHECKOUT_SESSION_TTL_SECONDS.
        """
        now = now or utcnow()
        cutoff = now - timedelta(seconds=CHECKOUT_RECONCILE_AFTER_SECONDS)
        stats = {"fulfilled": 0, "expired": 0, "pending": 0, "failed": 0, "retry": 0}

        for checkout in self.checkout_repo.list_open_created_before(cutoff):
            session_id = checkout.session_id
            age = (now - as_utc(checkout.created_at)).total_seconds()
            try:
                data = self.payment.retrieve_checkout_session(session_id)
            except PaymentProviderError as e:
                logger.error(f"Reconcile of {session_id} skipped: {e}")
                stats["retry"] += 1
                continue

            if data.get("payment_status") == "paid":
                try:
                    _, created = self.fulfill(session_id)
                    if created:
                        stats["fulfilled"] += 1
                except TRANSIENT_FULFILL_ERRORS as e:
                    if age < CHECKOUT_SESSION_TTL_SECONDS:
                        logger.warning(f"Reconcile fulfillment of {session_id} postponed: {e}")
                        stats["retry"] += 1
                    elif self._mark_failed(session_id, e):
                        stats["failed"] += 1
                except (PaymentError, ValueError) as e:
                    if self._mark_failed(session_id, e):
                        stats["failed"] += 1
                continue

            if age >= CHECKOUT_SESSION_TTL_SECONDS or data.get("status") == EXPIRED:
                if self.checkout_repo.change_status(session_id, OPEN, EXPIRED):
                    stats["expired"] += 1
                    logger.info(f"Checkout session {session_id} expired")
                self.checkout_repo.commit()
            else:
                stats["pending"] += 1

        return stats

    def _mark_failed(self, session_id: str, error: Exception) -> bool:
        try:
            changed = self.checkout_repo.change_status(session_id, OPEN, FAILED)
            self.checkout_repo.commit()
        except Exception:
            self.checkout_repo.rollback()
            raise
        if changed:
            logger.error(f"Paid checkout session {session_id} cannot be fulfilled, needs refund: {error}")
        return bool(changed)

    # =====================================================
    # HELPERS
    # =====================================================
    @staticmethod
    def _check_session_id(session_id: str) -> None:
        if not session_id or not _SESSION_ID_RE.match(session_id):
            raise ValueError("Invalid session id")

    @staticmethod
    def _parse_metadata(metadata: Dict[str, Any]) -> Tuple[int, Dict[str, Any], str | None]:
        try:
            customer_id = int(metadata["user_id"])
            shipping = ShippingDetails.model_validate(json.loads(metadata["shipping_details"]))
        except (KeyError, TypeError, ValueError, ValidationError) as e:
            raise PaymentError("Invalid checkout session metadata") from e
        return customer_id, shipping.model_dump(), metadata.get("customer_phone") or shipping.phone
