"""Observability: Pydantic Logfire setup and the request usage counter."""

import logging
import threading
from collections import Counter
from typing import Any

from chatops.config import settings

logger = logging.getLogger(__name__)

_logfire_enabled = False


def setup_logfire() -> bool:
    """Configure Logfire for observability.

    Only activates if LOGFIRE_TOKEN environment variable is set.
    Call this at application startup before handling events.

    Returns:
        True if Logfire was configured.
    """
    global _logfire_enabled
    if not settings.logfire_token:
        return False

    try:
        import logfire

        logfire.configure(
            token=settings.logfire_token,
            service_name="chatops",
            send_to_logfire="if-token-present",
        )
        _logfire_enabled = True
    except Exception as e:
        # Log but don't fail - observability is optional
        logger.warning("Failed to configure Logfire: %s", str(e))
    return _logfire_enabled


class UsageCounter:
    """Counts dispatched requests by label set.

    Safe for concurrent increments. When Logfire is configured, every
    increment is also exported as the `requests` metric.
    """

    def __init__(self, name: str = "requests") -> None:
        self.name = name
        self._counts: Counter[frozenset[tuple[str, str]]] = Counter()
        self._lock = threading.Lock()
        self._metric: Any = None

    def _get_metric(self) -> Any:
        if self._metric is None and _logfire_enabled:
            import logfire

            self._metric = logfire.metric_counter(
                self.name, unit="1", description="Count of all requests"
            )
        return self._metric

    def inc(self, labels: dict[str, str]) -> None:
        """Increment the counter for a label set.

        Args:
            labels: Label names and values.
        """
        key = frozenset(labels.items())
        with self._lock:
            self._counts[key] += 1

        metric = self._get_metric()
        if metric is not None:
            metric.add(1, labels)

    def get(self, labels: dict[str, str]) -> int:
        """Get the current count for a label set."""
        with self._lock:
            return self._counts[frozenset(labels.items())]

    def total(self) -> int:
        """Get the count over all label sets."""
        with self._lock:
            return sum(self._counts.values())


def request_labels(group: str, command: str, text: str, user_id: str) -> dict[str, str]:
    """Build usage counter labels, leaving out empty values.

    Examples:
        >>> request_labels("", "help", "", "U1")
        {'command': 'help', 'user_id': 'U1'}
    """
    labels: dict[str, str] = {}
    if group:
        labels["group"] = group
    if command:
        labels["command"] = command
    if text:
        labels["text"] = text
    labels["user_id"] = user_id
    return labels
