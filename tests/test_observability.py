"""Tests for logging and usage counting utilities."""

import json
import logging
import threading
from unittest.mock import MagicMock, patch

from chatops.utils import observability
from chatops.utils.logging import (
    StructuredFormatter,
    get_request_id,
    request_id_var,
    set_request_id,
)
from chatops.utils.observability import UsageCounter, request_labels


class TestUsageCounter:
    """Test suite for UsageCounter."""

    def test_counts_per_label_set(self) -> None:
        counter = UsageCounter()
        counter.inc({"command": "echo", "user_id": "U1"})
        counter.inc({"user_id": "U1", "command": "echo"})
        counter.inc({"command": "help", "user_id": "U1"})

        assert counter.get({"command": "echo", "user_id": "U1"}) == 2
        assert counter.get({"command": "help", "user_id": "U1"}) == 1
        assert counter.get({"command": "nope"}) == 0
        assert counter.total() == 3

    def test_concurrent_increments(self) -> None:
        counter = UsageCounter()
        labels = {"command": "echo"}

        def work() -> None:
            for _ in range(1000):
                counter.inc(labels)

        threads = [threading.Thread(target=work) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert counter.get(labels) == 8000

    def test_exports_metric_when_logfire_enabled(self, monkeypatch) -> None:
        metric = MagicMock()
        monkeypatch.setattr(observability, "_logfire_enabled", True)

        with patch("logfire.metric_counter", return_value=metric) as factory:
            counter = UsageCounter()
            counter.inc({"command": "echo"})
            counter.inc({"command": "echo"})

        factory.assert_called_once()
        assert metric.add.call_count == 2


def test_request_labels_omit_empty_values() -> None:
    assert request_labels("k8s", "deploy", "k8s deploy", "U1") == {
        "group": "k8s",
        "command": "deploy",
        "text": "k8s deploy",
        "user_id": "U1",
    }
    assert request_labels("", "", "", "U1") == {"user_id": "U1"}


def test_setup_logfire_without_token(monkeypatch) -> None:
    monkeypatch.setattr(observability.settings, "logfire_token", "")
    assert observability.setup_logfire() is False


class TestRequestId:
    def test_set_explicit(self) -> None:
        token = request_id_var.set("")
        try:
            assert set_request_id("abc") == "abc"
            assert get_request_id() == "abc"
        finally:
            request_id_var.reset(token)

    def test_generated(self) -> None:
        token = request_id_var.set("")
        try:
            request_id = set_request_id()
            assert len(request_id) == 12
            assert get_request_id() == request_id
        finally:
            request_id_var.reset(token)


def test_structured_formatter_includes_request_id() -> None:
    token = request_id_var.set("req-1")
    try:
        record = logging.LogRecord("chatops", logging.INFO, __file__, 1, "hello %s", ("world",), None)
        data = json.loads(StructuredFormatter().format(record))
    finally:
        request_id_var.reset(token)

    assert data["message"] == "hello world"
    assert data["level"] == "INFO"
    assert data["request_id"] == "req-1"


def test_structured_formatter_includes_dispatch_fields() -> None:
    record = logging.LogRecord("chatops", logging.ERROR, __file__, 1, "배포 실패 ✗", (), None)
    record.command = "deploy"
    record.user_id = "U1"
    record.group = ""

    line = StructuredFormatter().format(record)
    data = json.loads(line)

    assert data["command"] == "deploy"
    assert data["user_id"] == "U1"
    assert "group" not in data
    assert "channel_id" not in data
    assert "배포 실패 ✗" in line

