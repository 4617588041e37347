from __future__ import annotations

import asyncio

import httpx
import pytest
import respx

from fcm_client.adapters.fcm.auth import (
    DEFAULT_METADATA_TOKEN_URL,
    MetadataServerTokenProvider,
    StaticTokenProvider,
)
from fcm_client.adapters.fcm.errors import AuthError


class _FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def _token_response(token: str, expires_in: int = 3600) -> httpx.Response:
    return httpx.Response(
        200, json={"access_token": token, "expires_in": expires_in, "token_type": "Bearer"}
    )


def test_static_token_provider_returns_token() -> None:
    assert asyncio.run(StaticTokenProvider(" ya29.abc ").get_token()) == "ya29.abc"


def test_static_token_provider_rejects_empty_token() -> None:
    with pytest.raises(AuthError):
        asyncio.run(StaticTokenProvider("").get_token())


def test_metadata_provider_sends_flavor_header_and_caches() -> None:
    clock = _FakeClock()

    async def run() -> None:
        provider = MetadataServerTokenProvider(clock=clock)
        try:
            assert await provider.get_token() == "ya29.first"
            clock.now += 3000
            assert await provider.get_token() == "ya29.first"
        finally:
            await provider.aclose()

    with respx.mock:
        route = respx.get(DEFAULT_METADATA_TOKEN_URL).mock(
            return_value=_token_response("ya29.first")
        )
        asyncio.run(run())
        assert route.call_count == 1
        assert route.calls.last.request.headers["Metadata-Flavor"] == "Google"


def test_metadata_provider_refreshes_before_expiry() -> None:
    clock = _FakeClock()

    async def run() -> None:
        provider = MetadataServerTokenProvider(clock=clock)
        try:
            assert await provider.get_token() == "ya29.first"
            # Within the refresh margin of the 3600s lifetime.
            clock.now += 3550
            assert await provider.get_token() == "ya29.second"
        finally:
            await provider.aclose()

    with respx.mock:
        route = respx.get(DEFAULT_METADATA_TOKEN_URL).mock(
            side_effect=[_token_response("ya29.first"), _token_response("ya29.second")]
        )
        asyncio.run(run())
        assert route.call_count == 2


def test_metadata_provider_concurrent_callers_share_one_fetch() -> None:
    async def run() -> None:
        provider = MetadataServerTokenProvider(clock=_FakeClock())
        try:
            tokens = await asyncio.gather(*(provider.get_token() for _ in range(5)))
            assert tokens == ["ya29.only"] * 5
        finally:
            await provider.aclose()

    with respx.mock:
        route = respx.get(DEFAULT_METADATA_TOKEN_URL).mock(
            return_value=_token_response("ya29.only")
        )
        asyncio.run(run())
        assert route.call_count == 1


@pytest.mark.parametrize(
    "mock_kwargs",
    [
        {"return_value": httpx.Response(404, text="not on GCE")},
        {"return_value": httpx.Response(200, text="not json")},
        {"return_value": httpx.Response(200, json={"expires_in": 3600})},
        {"side_effect": httpx.ConnectError("no metadata server")},
        {"side_effect": httpx.ReadTimeout("slow")},
    ],
)
def test_metadata_provider_failures_raise_auth_error(mock_kwargs: dict) -> None:
    async def run() -> None:
        provider = MetadataServerTokenProvider(clock=_FakeClock())
        try:
            with pytest.raises(AuthError) as exc:
                await provider.get_token()
            assert exc.value.__cause__ is not None
        finally:
            await provider.aclose()

    with respx.mock:
        respx.get(DEFAULT_METADATA_TOKEN_URL).mock(**mock_kwargs)
        asyncio.run(run())
