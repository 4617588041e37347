from __future__ import annotations

import os
import socket
import sys
from pathlib import Path

import pytest


def pytest_configure() -> None:
    repo_root = Path(__file__).resolve().parents[1]
    src_path = repo_root / "src"
    sys.path.insert(0, str(src_path))


@pytest.fixture(autouse=True)
def _disable_network(monkeypatch: pytest.MonkeyPatch) -> None:
    """
    Prevent accidental real network calls in tests.

    Respx mocks should still work because they intercept at the HTTP client layer.
    """
    if (os.environ.get("ALLOW_NETWORK_TESTS") or "").strip().lower() in {"1", "true", "yes"}:
        return

    def _blocked(*_args: object, **_kwargs: object) -> None:
        raise RuntimeError(
            "Network access is disabled in tests (set ALLOW_NETWORK_TESTS=1 to override)."
        )

    monkeypatch.setattr(socket, "create_connection", _blocked)
    monkeypatch.setattr(socket.socket, "connect", _blocked, raising=True)


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    """Run in an empty directory with every variable the settings loader reads removed."""
    from fcm_client.config.env_aliases import FLAT_ENV_MAPPINGS

    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("FCM_CONFIG_PATH", raising=False)
    for name, _path in FLAT_ENV_MAPPINGS:
        monkeypatch.delenv(name, raising=False)
    for name in list(os.environ):
        if "__" in name and name.split("__", 1)[0].lower() in {
            "fcm",
            "auth",
            "observability",
            "hardening",
        }:
            monkeypatch.delenv(name, raising=False)
    return tmp_path
