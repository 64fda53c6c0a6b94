"""HTTP client for the order service."""

import httpx

from orderpay.common.config import settings
from orderpay.common.errors import CommunicationError, OrderNotFound
from orderpay.common.logging import logger
from orderpay.services.payment.schemas import OrderSummary


class HttpOrderGateway:
    """Reads order snapshots and requests order status advances.

    Every failure is reported as `OrderNotFound` (404 on lookup) or
    `CommunicationError` (everything else, timeouts included).
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout_seconds: float | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self.base_url = (base_url or settings.order_service_url).rstrip("/")
        self.client = client or httpx.Client(
            timeout=timeout_seconds if timeout_seconds is not None else settings.order_service_timeout_seconds
        )

    def get_order(self, order_id: int) -> OrderSummary:
        url = f"{self.base_url}/{order_id}"
        try:
            resp = self.client.get(url)
        except httpx.HTTPError as exc:
            raise CommunicationError(order_id, f"order lookup failed: {exc}") from exc
        if resp.status_code == 404:
            raise OrderNotFound(order_id, f"order {order_id} not found")
        if resp.status_code >= 400:
            raise CommunicationError(order_id, f"order lookup returned {resp.status_code}")
        try:
            return OrderSummary.model_validate(resp.json())
        except ValueError as exc:
            raise CommunicationError(order_id, f"malformed order payload: {exc}") from exc

    def advance_order_status(self, order_id: int) -> None:
        url = f"{self.base_url}/{order_id}/status"
        try:
            resp = self.client.patch(url)
        except httpx.HTTPError as exc:
            raise CommunicationError(order_id, f"order status update failed: {exc}") from exc
        if resp.status_code >= 400:
            raise CommunicationError(order_id, f"order status update returned {resp.status_code}")
        logger.info("order_status_advanced order_id=%s", order_id)

    def close(self) -> None:
        self.client.close()
