from __future__ import annotations

import io
import json
import logging

import pytest
import structlog

from fcm_client.observability.logger import configure_logging


def _capture_root_stream() -> io.StringIO:
    stream = io.StringIO()
    for handler in logging.getLogger().handlers:
        if isinstance(handler, logging.StreamHandler):
            handler.stream = stream
    return stream


def test_configure_logging_quiets_httpx_request_lines() -> None:
    configure_logging(log_level="DEBUG", json_logs=False)
    assert logging.getLogger("httpx").getEffectiveLevel() >= logging.WARNING


def test_json_logging_emits_event_fields(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("LOG_FORMAT", raising=False)
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    configure_logging(log_level="INFO", json_logs=True)
    stream = _capture_root_stream()

    structlog.get_logger("test.logger").info("fcm.send.ok", name="projects/p/messages/1")

    payload = json.loads(stream.getvalue())
    assert payload["event"] == "fcm.send.ok"
    assert payload["name"] == "projects/p/messages/1"
    assert payload["level"] == "info"
    assert "timestamp" in payload


def test_explicit_format_wins_over_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LOG_FORMAT", "human")
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    configure_logging(log_level="INFO", log_format="json")
    stream = _capture_root_stream()

    structlog.get_logger("test.logger").info("hello")

    assert json.loads(stream.getvalue())["event"] == "hello"


def test_json_logging_redacts_secrets_in_exception_traceback(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    configure_logging(log_level="INFO", json_logs=True, log_format="json")
    stream = _capture_root_stream()

    logger = structlog.get_logger("test.logger")
    try:
        raise RuntimeError("Authorization: Bearer topsecret access_token=abc123")
    except RuntimeError:
        logger.exception("expected_exception")

    rendered = json.dumps(json.loads(stream.getvalue()))
    assert "topsecret" not in rendered
    assert "abc123" not in rendered


def test_human_logging_redacts_bearer_tokens(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    configure_logging(log_level="INFO", json_logs=False, log_format="human")
    stream = _capture_root_stream()

    structlog.get_logger("test.logger").warning("auth header was ya29.leakedvalue")

    assert "leakedvalue" not in stream.getvalue()
