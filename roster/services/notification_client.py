# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Notification client: inter-service communication.
Handles HTTP calls to the notification-service with timeout & fault tolerance.
Delivery runs detached on a small worker pool; the caller never waits on it.
"""

from concurrent.futures import ThreadPoolExecutor
from typing import Any, Optional

import httpx

from roster.core.config import settings
from roster.core.logging import get_logger
from roster.metrics.prometheus import NOTIFICATIONS_SENT

logger = get_logger(__name__)


class NotificationClient:
    """Fire-and-forget notification sender via notification-service."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        executor: Optional[ThreadPoolExecutor] = None,
    ) -> None:
        self._base_url = base_url or settings.NOTIFICATION_SERVICE_URL
        self._timeout = timeout or settings.NOTIFICATION_TIMEOUT
        self._executor = executor

    @classmethod
    def from_settings(cls) -> "NotificationClient":
        executor = None
        if settings.NOTIFICATION_ASYNC:
            executor = ThreadPoolExecutor(
                max_workers=settings.NOTIFICATION_WORKERS,
                thread_name_prefix="notify",
            )
        return cls(executor=executor)

    def send(
        self,
        event: str,
        recipient_ids: list[str],
        subject: str,
        body: str,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        """Queue a notification. Failures are logged but never raised."""
        payload = {
            "event": event,
            "recipient_ids": recipient_ids,
            "subject": subject,
            "body": body,
            "context": context or {},
        }
        if self._executor is None:
            self._deliver(payload)
            return
        try:
            self._executor.submit(self._deliver, payload)
        except RuntimeError as exc:
            # Pool already shut down (service stopping).
            NOTIFICATIONS_SENT.labels(event=event, outcome="failed").inc()
            logger.warning("Notification dropped: event=%s, error=%s", event, exc)

    def _deliver(self, payload: dict[str, Any]) -> None:
        event = payload["event"]
        try:
            with httpx.Client(timeout=self._timeout) as client:
                resp = client.post(f"{self._base_url}/api/v1/notify", json=payload)
            resp.raise_for_status()
            NOTIFICATIONS_SENT.labels(event=event, outcome="sent").inc()
            logger.info(
                "Notification sent: event=%s, recipients=%s, status=%d",
                event,
                ",".join(payload["recipient_ids"]),
                resp.status_code,
            )
        except Exception as exc:
            NOTIFICATIONS_SENT.labels(event=event, outcome="failed").inc()
            logger.warning("Notification failed: event=%s, error=%s", event, exc)

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=False)
