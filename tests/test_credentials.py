"""Tests for credential rotation."""

import asyncio

import httpx
import pytest

from meal_nutrients.domain.errors import (
    AllCredentialsExhausted,
    ConfigurationMissing,
    CredentialExhausted,
    UpstreamFatal,
)
from meal_nutrients.services.credentials import CredentialPool, CredentialRotator
from tests.conftest import FakeClock


def _rotator(
    handler, tokens: tuple[str, ...], now: float = 0.0
) -> CredentialRotator:
    return CredentialRotator(
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        pool=CredentialPool(tokens=tokens),
        clock=FakeClock(now),
    )


def _token(request: httpx.Request) -> str:
    return request.headers["Authorization"].removeprefix("Bearer ")


def test_start_index_follows_minute_bucket() -> None:
    pool = CredentialPool(tokens=("a", "b", "c"))

    assert pool.start_index(0) == 0
    assert pool.start_index(59.9) == 0
    assert pool.start_index(60) == 1
    assert pool.start_index(185) == 0
    assert pool.cycle(125) == ["c", "a", "b"]


def test_empty_pool_is_configuration_error() -> None:
    with pytest.raises(ConfigurationMissing):
        CredentialPool(tokens=())

    with pytest.raises(ConfigurationMissing):
        CredentialPool.from_csv(" , ")


def test_from_csv_trims_tokens() -> None:
    pool = CredentialPool.from_csv(" a, b ,,c ")

    assert pool.tokens == ("a", "b", "c")


def test_rotates_past_rate_limited_token() -> None:
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(_token(request))
        if _token(request) == "a":
            return httpx.Response(429, text="slow down")
        return httpx.Response(200, json={"ok": True})

    rotator = _rotator(handler, ("a", "b", "c"))

    response = asyncio.run(rotator.call("GET", "https://upstream.test/x"))

    assert response.json() == {"ok": True}
    assert seen == ["a", "b"]


def test_transport_errors_are_recoverable() -> None:
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(_token(request))
        if _token(request) == "b":
            raise httpx.ConnectTimeout("timed out", request=request)
        return httpx.Response(200, json={})

    rotator = _rotator(handler, ("a", "b"), now=60.0)

    asyncio.run(rotator.call("POST", "https://upstream.test/x", json={}))

    assert seen == ["b", "a"]


def test_fatal_status_aborts_without_trying_other_tokens() -> None:
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(_token(request))
        return httpx.Response(500, text="boom")

    rotator = _rotator(handler, ("a", "b", "c"))

    with pytest.raises(UpstreamFatal) as excinfo:
        asyncio.run(rotator.call("GET", "https://upstream.test/x"))

    assert excinfo.value.status_code == 500
    assert excinfo.value.body == "boom"
    assert seen == ["a"]


def test_exhaustion_tries_each_token_once() -> None:
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(_token(request))
        return httpx.Response(401 if len(seen) % 2 else 403, text="denied")

    rotator = _rotator(handler, ("a", "b", "c"), now=120.0)

    with pytest.raises(AllCredentialsExhausted) as excinfo:
        asyncio.run(rotator.call("GET", "https://upstream.test/x"))

    assert isinstance(excinfo.value, CredentialExhausted)
    assert excinfo.value.attempts == 3
    assert seen == ["c", "a", "b"]


def test_failures_are_not_remembered_between_calls() -> None:
    seen: list[str] = []
    fail = {"a"}

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(_token(request))
        if _token(request) in fail:
            return httpx.Response(429)
        return httpx.Response(200, json={})

    rotator = _rotator(handler, ("a", "b"))

    asyncio.run(rotator.call("GET", "https://upstream.test/x"))
    asyncio.run(rotator.call("GET", "https://upstream.test/x"))

    assert seen == ["a", "b", "a", "b"]


def test_custom_authorize_builds_headers() -> None:
    captured: list[httpx.Headers] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request.headers)
        return httpx.Response(200, json={})

    rotator = CredentialRotator(
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        pool=CredentialPool(tokens=("id-1",)),
        authorize=lambda token: {"x-api-key": token},
    )

    asyncio.run(
        rotator.call("GET", "https://upstream.test/x", headers={"Accept": "a/b"})
    )

    assert captured[0]["x-api-key"] == "id-1"
    assert captured[0]["Accept"] == "a/b"
    assert "Authorization" not in captured[0]


def test_concurrent_calls_rotate_independently() -> None:
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(_token(request))
        if _token(request) == "a":
            return httpx.Response(429, text="slow down")
        return httpx.Response(200, json={"ok": True})

    rotator = _rotator(handler, ("a", "b", "c"))

    async def call_many() -> list[httpx.Response]:
        return await asyncio.gather(
            *(rotator.call("GET", "https://upstream.test/x") for _ in range(4))
        )

    responses = asyncio.run(call_many())

    assert [response.status_code for response in responses] == [200] * 4
    assert sorted(seen) == ["a"] * 4 + ["b"] * 4
