"""
Best-effort event notifications.

notify() never raises and never blocks the caller: delivery runs on a small
thread pool and every failure is logged and counted, nothing more.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, Optional

import httpx

from ..config import NOTIFY_ENABLED, NOTIFY_WEBHOOK_URL, NOTIFY_TIMEOUT_SECONDS, NOTIFY_WORKERS
from .prometheus_metrics import prometheus_metrics

logger = logging.getLogger("edlhub.notify")

EVENT_INDICATOR_ADDED = "IndicatorAdded"


class Notifier:
    """Dispatches lifecycle events to the log and an optional webhook"""

    def __init__(self, webhook_url: Optional[str] = None, enabled: bool = True,
                 timeout: float = 3.0, workers: int = 2):
        self.webhook_url = webhook_url or ""
        self.enabled = enabled
        self.timeout = timeout
        self._executor = ThreadPoolExecutor(max_workers=max(1, workers), thread_name_prefix="notify")

    def notify(self, event_type: str, payload: Dict[str, Any]) -> None:
        if not self.enabled:
            return
        try:
            self._executor.submit(self._deliver, event_type, payload)
        except RuntimeError as e:
            # executor already shut down
            logger.warning("notification dropped: %s", e, extra={"event_type": event_type})

    def _deliver(self, event_type: str, payload: Dict[str, Any]) -> None:
        logger.info("event %s", event_type, extra={"event_type": event_type, "component": "notify",
                                                  "token": payload.get("token")})
        if not self.webhook_url:
            return
        body = {"event": event_type, "ts": time.time(), "payload": payload}
        try:
            resp = httpx.post(self.webhook_url, json=body, timeout=self.timeout)
            resp.raise_for_status()
        except Exception as e:
            prometheus_metrics.increment_notify_failures(event_type)
            logger.warning("notification delivery failed: %s", e, extra={"event_type": event_type})

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)


notifier = Notifier(
    webhook_url=NOTIFY_WEBHOOK_URL,
    enabled=NOTIFY_ENABLED,
    timeout=NOTIFY_TIMEOUT_SECONDS,
    workers=NOTIFY_WORKERS,
)
