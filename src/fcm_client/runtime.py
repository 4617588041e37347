from __future__ import annotations

from fcm_client.adapters.fcm.auth import (
    MetadataServerTokenProvider,
    StaticTokenProvider,
    TokenProvider,
)
from fcm_client.adapters.fcm.client import AsyncFcmClient
from fcm_client.config.settings import Settings


def build_token_provider(settings: Settings) -> TokenProvider:
    if settings.auth.mode == "metadata":
        return MetadataServerTokenProvider(
            url=settings.auth.metadata_url,
            timeout_seconds=settings.auth.metadata_timeout_seconds,
        )
    token = settings.auth.access_token
    return StaticTokenProvider(token.get_secret_value() if token is not None else "")


def build_client(settings: Settings) -> AsyncFcmClient:
    """Construct an `AsyncFcmClient` from validated settings (raises `ConfigError`)."""
    return AsyncFcmClient(
        project_id=settings.fcm.project_id,
        token_provider=build_token_provider(settings),
        base_url=str(settings.fcm.base_url),
        timeout_seconds=settings.fcm.timeout_seconds,
        verify_tls=settings.fcm.verify_tls,
        ca_bundle_path=settings.fcm.ca_bundle_path,
        trust_env=settings.hardening.transport.trust_env,
    )
