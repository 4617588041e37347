"""Flat environment variable names mapped onto nested settings paths.

pydantic-settings already understands the nested form (`FCM__PROJECT_ID`); this
module adds the flat names used in deployment docs (`FCM_PROJECT_ID`).
"""
from __future__ import annotations

import os
from collections.abc import Iterable, Mapping
from typing import Any

FLAT_ENV_MAPPINGS: tuple[tuple[str, tuple[str, ...]], ...] = (
    # FCM endpoint
    ("FCM_PROJECT_ID", ("fcm", "project_id")),
    ("FCM_BASE_URL", ("fcm", "base_url")),
    ("FCM_TIMEOUT_SECONDS", ("fcm", "timeout_seconds")),
    ("FCM_VERIFY_TLS", ("fcm", "verify_tls")),
    ("FCM_CA_BUNDLE_PATH", ("fcm", "ca_bundle_path")),
    # Auth
    ("FCM_AUTH_MODE", ("auth", "mode")),
    ("FCM_ACCESS_TOKEN", ("auth", "access_token")),
    ("FCM_METADATA_URL", ("auth", "metadata_url")),
    ("FCM_METADATA_TIMEOUT_SECONDS", ("auth", "metadata_timeout_seconds")),
    # Observability
    ("LOG_LEVEL", ("observability", "log_level")),
    ("LOG_FORMAT", ("observability", "log_format")),
    ("LOG_JSON", ("observability", "json_logs")),
    # Hardening
    ("HARDENING_TRANSPORT_TRUST_ENV", ("hardening", "transport", "trust_env")),
    (
        "HARDENING_TRANSPORT_ALLOW_INSECURE_HTTP",
        ("hardening", "transport", "allow_insecure_http"),
    ),
    (
        "HARDENING_TRANSPORT_ALLOW_INSECURE_TLS",
        ("hardening", "transport", "allow_insecure_tls"),
    ),
)


def _set_nested(data: dict[str, Any], path: tuple[str, ...], value: Any) -> None:
    node = data
    for part in path[:-1]:
        child = node.get(part)
        if not isinstance(child, dict):
            child = {}
            node[part] = child
        node = child
    node[path[-1]] = value


def _apply_alias_mappings(
    env: Mapping[str, str],
    data: dict[str, Any],
    mappings: Iterable[tuple[str, tuple[str, ...]]],
) -> None:
    for env_name, path in mappings:
        value = env.get(env_name)
        if value:
            _set_nested(data, path, value)


def get_flat_env_settings_source() -> dict[str, Any]:
    data: dict[str, Any] = {}
    _apply_alias_mappings(os.environ, data, FLAT_ENV_MAPPINGS)
    return data
