"""Best-effort forwarding of emergency events to the alert backend.

Delivery is fire-and-forget relative to channel dispatch: a failure is
raised to the caller as :class:`NotifyError` but never undoes a dispatch.
There is no automatic retry, and at most one alert is sent per action id;
repeating a call for the same action returns the first receipt.
"""

from __future__ import annotations

from collections import OrderedDict
from datetime import UTC, datetime
from uuid import uuid4

import httpx
import orjson
import structlog
from pydantic import BaseModel, Field

from src.models.location import Position
from src.services.errors import NotifyError, NotifyErrorKind

logger = structlog.get_logger(__name__)


class AlertReceipt(BaseModel):
    alert_id: str = Field(default_factory=lambda: uuid4().hex)
    action_id: str
    delivered: bool
    sent_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class AlertNotifier:
    """Posts ``{position, message}`` alerts to a backend endpoint.

    Parameters
    ----------
    endpoint_url:
        Alert endpoint.  When ``None`` alerts are only logged and receipts
        report ``delivered=False``.
    client:
        Optional pre-configured ``httpx.AsyncClient`` (used in tests).
    max_receipts:
        Number of recent action ids whose receipts are remembered for
        duplicate suppression.  The oldest receipt is evicted first.
    """

    __slots__ = ("_client", "_endpoint_url", "_max_receipts", "_receipts")

    def __init__(
        self,
        endpoint_url: str | None = None,
        *,
        timeout: float = 5.0,
        client: httpx.AsyncClient | None = None,
        max_receipts: int = 1024,
    ) -> None:
        if max_receipts < 1:
            raise ValueError("max_receipts must be at least 1")
        self._endpoint_url = endpoint_url
        self._client = client or httpx.AsyncClient(
            timeout=timeout,
            headers={"User-Agent": "RescueGuard/1.0", "Accept": "application/json"},
        )
        self._max_receipts = max_receipts
        self._receipts: OrderedDict[str, AlertReceipt] = OrderedDict()

    async def close(self) -> None:
        await self._client.aclose()

    @property
    def receipt_count(self) -> int:
        return len(self._receipts)

    def _remember(self, receipt: AlertReceipt) -> None:
        self._receipts.pop(receipt.action_id, None)
        self._receipts[receipt.action_id] = receipt
        while len(self._receipts) > self._max_receipts:
            self._receipts.popitem(last=False)

    @property
    def enabled(self) -> bool:
        return bool(self._endpoint_url)

    async def notify(self, position: Position, message: str, *, action_id: str) -> AlertReceipt:
        """Send one alert for ``action_id``.

        Raises
        ------
        NotifyError
            On transport errors or non-2xx responses.
        """
        previous = self._receipts.get(action_id)
        if previous is not None:
            logger.info("alerts.duplicate_suppressed", action_id=action_id)
            return previous

        if not self._endpoint_url:
            logger.info(
                "alerts.endpoint_not_configured",
                action_id=action_id,
                message=message,
                latitude=position.latitude,
                longitude=position.longitude,
            )
            receipt = AlertReceipt(action_id=action_id, delivered=False)
            self._remember(receipt)
            return receipt

        payload = {
            "action_id": action_id,
            "message": message,
            "position": position.model_dump(mode="json"),
        }
        # Recorded before sending so a concurrent repeat cannot double-send.
        self._remember(AlertReceipt(action_id=action_id, delivered=False))
        try:
            response = await self._client.post(
                self._endpoint_url,
                content=orjson.dumps(payload),
                headers={"Content-Type": "application/json"},
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("alerts.delivery_failed", action_id=action_id, error=str(exc))
            raise NotifyError(NotifyErrorKind.NETWORK_FAILURE, str(exc)) from exc

        receipt = AlertReceipt(action_id=action_id, delivered=True)
        self._remember(receipt)
        logger.info("alerts.delivered", action_id=action_id, alert_id=receipt.alert_id)
        return receipt
