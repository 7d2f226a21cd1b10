"""
In-process outbox for workflow webhook deliveries.

Requests enqueue deliveries while they run and hand `dispatch_pending` to
FastAPI background tasks, so an unreachable workflow endpoint never fails
or delays the request that triggered it.
"""
import logging
from collections import deque
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Deque, Dict, List, Optional

import httpx

from ..config import get_settings

logger = logging.getLogger(__name__)

HISTORY_SIZE = 100


class WebhookDelivery:
    """One workflow payload and the outcome of delivering it."""

    def __init__(self, workflow: str, payload: Dict[str, Any]):
        self.workflow = workflow
        self.payload = payload
        self.attempts = 0
        self.delivered = False
        self.skipped = False
        self.error: Optional[str] = None
        self.created_at = datetime.now(timezone.utc)

    def __repr__(self):
        return f"<WebhookDelivery(workflow='{self.workflow}', attempts={self.attempts}, delivered={self.delivered})>"


class WebhookOutbox:
    """
    Queue of workflow deliveries with an explicit attempt policy.

    Each delivery is POSTed to `<base_url>/<workflow>` at most
    `max_attempts` times. Non-2xx responses and transport errors are logged
    and recorded in `failed`; they are never raised to the caller.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        max_attempts: int = 1,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_attempts = max(1, max_attempts)
        self.transport = transport
        self.pending: Deque[WebhookDelivery] = deque()
        self.delivered: Deque[WebhookDelivery] = deque(maxlen=HISTORY_SIZE)
        self.failed: Deque[WebhookDelivery] = deque(maxlen=HISTORY_SIZE)

    def client(self, timeout: Optional[float] = None) -> httpx.Client:
        """Build an HTTP client bound to this outbox's transport."""
        return httpx.Client(
            timeout=timeout if timeout is not None else self.timeout,
            transport=self.transport,
        )

    # PUBLIC_INTERFACE
    def enqueue(self, workflow: str, payload: Dict[str, Any]) -> WebhookDelivery:
        """
        Record a delivery for later dispatch.

        Args:
            workflow: Workflow name, appended to the webhook base URL
            payload: JSON-serialisable body

        Returns:
            WebhookDelivery: The queued delivery
        """
        delivery = WebhookDelivery(workflow, payload)
        self.pending.append(delivery)
        return delivery

    # PUBLIC_INTERFACE
    def dispatch_pending(self) -> List[WebhookDelivery]:
        """
        Deliver every queued payload.

        Returns:
            List[WebhookDelivery]: The deliveries processed in this call
        """
        processed = []
        while self.pending:
            try:
                delivery = self.pending.popleft()
            except IndexError:
                break
            self._deliver(delivery)
            processed.append(delivery)
        return processed

    def _deliver(self, delivery: WebhookDelivery) -> None:
        if not self.base_url:
            delivery.skipped = True
            logger.warning(f"Webhook URL not configured, skipping workflow {delivery.workflow}")
            return

        url = f"{self.base_url}/{delivery.workflow}"
        with self.client() as client:
            while delivery.attempts < self.max_attempts:
                delivery.attempts += 1
                try:
                    response = client.post(url, json=delivery.payload)
                    response.raise_for_status()
                except httpx.HTTPError as e:
                    delivery.error = str(e)
                    logger.error(
                        f"Error triggering workflow {delivery.workflow} "
                        f"(attempt {delivery.attempts}/{self.max_attempts}): {e}"
                    )
                    continue

                delivery.delivered = True
                delivery.error = None
                self.delivered.append(delivery)
                logger.info(f"Workflow {delivery.workflow} triggered successfully")
                return

        self.failed.append(delivery)


# PUBLIC_INTERFACE
@lru_cache()
def get_outbox() -> WebhookOutbox:
    """
    Get the process-wide outbox configured from settings.

    Returns:
        WebhookOutbox: Shared outbox instance
    """
    settings = get_settings()
    return WebhookOutbox(
        base_url=settings.n8n_webhook_url,
        timeout=settings.integration_timeout_seconds,
        max_attempts=settings.webhook_max_attempts,
    )
