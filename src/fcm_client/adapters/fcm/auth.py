"""OAuth2 access-token providers for the FCM client."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

import httpx
import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from fcm_client.adapters.fcm.errors import AuthError
from fcm_client.adapters.http_util import timeouts_for

log = structlog.get_logger(__name__)

DEFAULT_METADATA_TOKEN_URL = (
    "http://metadata.google.internal/computeMetadata/v1/"
    "instance/service-accounts/default/token"
)
# Refresh a cached token this long before the server-reported expiry.
_EXPIRY_MARGIN_SECONDS = 60.0


class TokenProvider(Protocol):
    async def get_token(self) -> str: ...


class StaticTokenProvider:
    """Hands out a pre-issued access token (e.g. from `gcloud auth print-access-token`)."""

    def __init__(self, token: str) -> None:
        self._token = token.strip()

    async def get_token(self) -> str:
        if not self._token:
            raise AuthError()
        return self._token


class _MetadataToken(BaseModel):
    model_config = ConfigDict(extra="ignore")

    access_token: str = Field(min_length=1)
    expires_in: float = Field(gt=0)
    token_type: str = "Bearer"


@dataclass(frozen=True, slots=True)
class _CachedToken:
    value: str
    expires_at: float


class MetadataServerTokenProvider:
    """
    Fetches tokens for the default service account from the GCE metadata server.

    Tokens are cached until shortly before they expire; concurrent callers share a
    single refresh.
    """

    def __init__(
        self,
        *,
        url: str = DEFAULT_METADATA_TOKEN_URL,
        timeout_seconds: float = 5.0,
        clock: Callable[[], float] = time.monotonic,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._url = url
        self._clock = clock
        self._lock = asyncio.Lock()
        self._cached: _CachedToken | None = None

        self._owns_http_client = http_client is None
        self._http = http_client or httpx.AsyncClient(
            timeout=timeouts_for(timeout_seconds),
            trust_env=False,
            follow_redirects=False,
        )

    async def aclose(self) -> None:
        if self._owns_http_client:
            await self._http.aclose()

    def _fresh(self) -> str | None:
        cached = self._cached
        if cached is not None and self._clock() < cached.expires_at:
            return cached.value
        return None

    async def get_token(self) -> str:
        if (token := self._fresh()) is not None:
            return token

        async with self._lock:
            if (token := self._fresh()) is not None:
                return token
            self._cached = await self._fetch()
            return self._cached.value

    async def _fetch(self) -> _CachedToken:
        try:
            response = await self._http.get(self._url, headers={"Metadata-Flavor": "Google"})
        except httpx.HTTPError as exc:
            raise AuthError() from exc

        if not 200 <= response.status_code < 300:
            raise AuthError() from httpx.HTTPStatusError(
                f"metadata server returned status={response.status_code}",
                request=response.request,
                response=response,
            )

        try:
            payload = _MetadataToken.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise AuthError() from exc

        lifetime = max(payload.expires_in - _EXPIRY_MARGIN_SECONDS, 0.0)
        log.debug("fcm.token.refreshed", expires_in=payload.expires_in)
        return _CachedToken(value=payload.access_token, expires_at=self._clock() + lifetime)
