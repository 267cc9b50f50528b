# mummy_meals/services/payment_client.py
import uuid
from typing import Any, Dict, List, Tuple

import requests
from requests import RequestException

from mummy_meals.domain.errors import PaymentProviderError
from mummy_meals.utils.logging import get_logger
from mummy_meals.utils.retry import http_retry
from mummy_meals.utils.settings import PAYMENT_API_URL, PAYMENT_SECRET_KEY, PAYMENT_TIMEOUT_SECONDS

logger = get_logger(__name__)


def encode_form(value: Any, prefix: str = "") -> List[Tuple[str, str]]:
    """
    Zagniezdzone parametry w formacie form-encoded providera:
    {"metadata": {"user_id": 5}} -> [("metadata[user_id]", "5")]
    """
    pairs: List[Tuple[str, str]] = []
    if isinstance(value, dict):
        for key, inner in value.items():
            pairs.extend(encode_form(inner, f"{prefix}[{key}]" if prefix else str(key)))
    elif isinstance(value, (list, tuple)):
        for idx, inner in enumerate(value):
            pairs.extend(encode_form(inner, f"{prefix}[{idx}]"))
    elif isinstance(value, bool):
        pairs.append((prefix, "true" if value else "false"))
    elif value is not None:
        pairs.append((prefix, str(value)))
    return pairs


class PaymentClient:
    """Klient HTTP do checkout sessions providera platnosci."""

    def __init__(
        self,
        base_url: str | None = None,
        secret_key: str | None = None,
        timeout: int = PAYMENT_TIMEOUT_SECONDS,
    ):
        self.base_url = (base_url or PAYMENT_API_URL).rstrip("/")
        self.secret_key = secret_key if secret_key is not None else PAYMENT_SECRET_KEY
        self.timeout = timeout

    def _headers(self, idempotency_key: str | None = None) -> Dict[str, str]:
        headers = {"Authorization": f"Bearer {self.secret_key}"}
        if idempotency_key:
            headers["Idempotency-Key"] = idempotency_key
        return headers

    @http_retry()
    def _post(self, path: str, data: List[Tuple[str, str]], idempotency_key: str) -> dict:
        url = f"{self.base_url}{path}"
        logger.info(f"PaymentClient POST {url}")

        resp = requests.post(url, data=data, headers=self._headers(idempotency_key), timeout=self.timeout)
        resp.raise_for_status()
        return resp.json()

    @http_retry()
    def _get(self, path: str) -> dict:
        url = f"{self.base_url}{path}"
        logger.info(f"PaymentClient GET {url}")

        resp = requests.get(url, headers=self._headers(), timeout=self.timeout)
        resp.raise_for_status()
        return resp.json()

    def create_checkout_session(
        self,
        line_items: List[dict],
        success_url: str,
        cancel_url: str,
        metadata: Dict[str, str],
    ) -> dict:
        payload = {
            "mode": "payment",
            "payment_method_types": ["card"],
            "line_items": line_items,
            "success_url": success_url,
            "cancel_url": cancel_url,
            "metadata": metadata,
        }
        #ten sam klucz przy ponowieniach, provider nie zalozy drugiej sesji
        idempotency_key = uuid.uuid4().hex
        try:
            return self._post("/v1/checkout/sessions", encode_form(payload), idempotency_key)
        except RequestException as e:
            logger.error(f"Creating checkout session failed: {e}")
            raise PaymentProviderError("Payment provider is unavailable") from e

    def retrieve_checkout_session(self, session_id: str) -> dict:
        try:
            return self._get(f"/v1/checkout/sessions/{session_id}")
        except RequestException as e:
            logger.error(f"Retrieving checkout session {session_id} failed: {e}")
            raise PaymentProviderError("Payment provider is unavailable") from e
