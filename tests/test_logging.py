from __future__ import annotations

import logging

from royalty_analytics.core.logging import configure_logging


def test_configure_logging_adds_stream_handler() -> None:
    configure_logging("info")
    root = logging.getLogger()
    assert any(isinstance(h, logging.StreamHandler) for h in root.handlers)


def test_configure_logging_quiets_http_client() -> None:
    configure_logging("DEBUG")
    assert logging.getLogger("httpx").level == logging.WARNING
