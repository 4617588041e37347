from __future__ import annotations

import asyncio
import ssl
from collections.abc import Iterable
from pathlib import Path
from typing import Any, NoReturn

import httpx
import structlog
from pydantic import ValidationError

from fcm_client.adapters.fcm.auth import TokenProvider
from fcm_client.adapters.fcm.errors import (
    AuthError,
    ClientError,
    ConfigError,
    DeserializationError,
    RequestTimeoutError,
    Result,
    ServerError,
    classify,
)
from fcm_client.adapters.fcm.models import GoogleErrorBody, Message, SendRequest, SendResponse
from fcm_client.adapters.http_util import timeouts_for

log = structlog.get_logger(__name__)

DEFAULT_BASE_URL = "https://fcm.googleapis.com"

# Status used for classification when the request never produced an HTTP response.
_NO_STATUS = 0


class AsyncFcmClient:
    """
    Sends messages through the FCM HTTP v1 API.

    Every failure surfaces as exactly one `ClientError` subclass. Each call is a
    single HTTP attempt; back-off and retries are left to the caller.
    """

    def __init__(
        self,
        *,
        project_id: str,
        token_provider: TokenProvider,
        base_url: str = DEFAULT_BASE_URL,
        timeout_seconds: float = 10.0,
        verify_tls: bool = True,
        ca_bundle_path: Path | None = None,
        trust_env: bool = False,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        project_id = project_id.strip()
        if not project_id:
            raise ConfigError() from ValueError("project_id must not be empty")

        try:
            url = httpx.URL(base_url)
        except httpx.InvalidURL as exc:
            raise ConfigError() from exc
        if not url.scheme or not url.host:
            raise ConfigError() from ValueError(
                "base_url must include scheme and host, e.g. https://fcm.googleapis.com"
            )

        # Ensure a trailing slash to make httpx base_url joining unambiguous.
        base_path = url.path.rstrip("/") + "/"
        self._base_url = url.copy_with(path=base_path)
        self._project_id = project_id
        self._tokens = token_provider

        self._owns_http_client = http_client is None
        if http_client is not None:
            self._http = http_client
            return

        try:
            verify: ssl.SSLContext | bool = (
                ssl.create_default_context(cafile=str(ca_bundle_path))
                if verify_tls and ca_bundle_path is not None
                else verify_tls
            )
            self._http = httpx.AsyncClient(
                base_url=self._base_url,
                headers={"Accept": "application/json"},
                timeout=timeouts_for(timeout_seconds),
                verify=verify,
                trust_env=trust_env,
                follow_redirects=False,
            )
        except (OSError, ssl.SSLError, ValueError) as exc:
            raise ConfigError() from exc

    @property
    def project_id(self) -> str:
        return self._project_id

    async def aclose(self) -> None:
        """Close the owned HTTP client and any token provider exposing `aclose()`."""
        if self._owns_http_client:
            await self._http.aclose()
        close_tokens = getattr(self._tokens, "aclose", None)
        if close_tokens is not None:
            await close_tokens()

    async def __aenter__(self) -> AsyncFcmClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: Any,
    ) -> None:
        await self.aclose()

    async def send(self, message: Message, *, validate_only: bool = False) -> str:
        """Send one message and return the name FCM assigned to it."""
        body = SendRequest(message=message, validate_only=validate_only or None)
        response = await self._post(
            f"v1/projects/{self._project_id}/messages:send", json=body.to_wire()
        )
        result = _parse_send_response(response)
        log.debug("fcm.send.ok", name=result.name, validate_only=validate_only)
        return result.name

    async def send_each(
        self, messages: Iterable[Message], *, validate_only: bool = False
    ) -> list[Result[str]]:
        """
        Send messages concurrently.

        Returns one entry per message, in input order: the message name on success,
        the `ClientError` otherwise.
        """
        return list(
            await asyncio.gather(
                *(self._send_as_result(message, validate_only) for message in messages)
            )
        )

    async def _send_as_result(self, message: Message, validate_only: bool) -> Result[str]:
        try:
            return await self.send(message, validate_only=validate_only)
        except ClientError as exc:
            return exc

    async def _post(self, path: str, *, json: Any) -> httpx.Response:
        token = await self._access_token()
        try:
            response = await self._http.post(
                path, json=json, headers={"Authorization": f"Bearer {token}"}
            )
        except httpx.TimeoutException as exc:
            raise RequestTimeoutError() from exc
        except httpx.DecodingError as exc:
            raise DeserializationError() from exc
        except httpx.RequestError as exc:
            # Connection, protocol and redirect failures: no status was received.
            detail = f"{exc.__class__.__name__}: {exc}".strip()
            raise ServerError(classify(_NO_STATUS, detail)) from exc

        if 200 <= response.status_code < 300:
            return response
        _raise_for_status(response)

    async def _access_token(self) -> str:
        try:
            token = await self._tokens.get_token()
        except AuthError:
            raise
        except Exception as exc:
            raise AuthError() from exc
        if not token:
            raise AuthError()
        return token


def _parse_send_response(response: httpx.Response) -> SendResponse:
    try:
        return SendResponse.model_validate(response.json())
    except (ValueError, ValidationError) as exc:
        raise DeserializationError() from exc


def _error_body(response: httpx.Response) -> GoogleErrorBody | None:
    try:
        return GoogleErrorBody.model_validate(response.json())
    except (ValueError, ValidationError):
        return None


def _raise_for_status(response: httpx.Response) -> NoReturn:
    status = response.status_code
    body = _error_body(response)
    if body is None:
        raise ServerError(classify(status, response.text), status_code=status)

    detail = body.error.message if body.error.message is not None else response.text
    raise ServerError(
        classify(status, detail),
        status_code=status,
        fcm_error_code=body.error.fcm_error_code,
    )
