# chatops/utils/__init__.py
"""Utility functions for the chatops bot."""

from chatops.utils.logging import (
    configure_logging,
    get_request_id,
    set_request_id,
)
from chatops.utils.observability import UsageCounter, request_labels, setup_logfire

__all__ = [
    "UsageCounter",
    "configure_logging",
    "get_request_id",
    "request_labels",
    "set_request_id",
    "setup_logfire",
]
