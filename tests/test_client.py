"""ZaiQuotaClient のユニットテスト（respx モック）"""

import json
from typing import Any
from unittest.mock import MagicMock

import httpx
import pytest
import respx
from structlog.testing import capture_logs
from zai_quota import (
    QUOTA_CACHE_KEY,
    QuotaClientConfig,
    QuotaResponse,
    TtlCache,
    ZaiErrorKind,
    ZaiQuotaClient,
    ZaiQuotaError,
)

from conftest import ENDPOINT

API_KEY = "test-api-key-123456"


def make_config(**overrides: Any) -> QuotaClientConfig:
    return QuotaClientConfig(api_key=API_KEY, endpoint=ENDPOINT, **overrides)


def make_client(**overrides: Any) -> ZaiQuotaClient:
    return ZaiQuotaClient(make_config(**overrides))


@respx.mock
async def test_fetch_quota_success(success_payload: dict[str, Any]) -> None:
    """取得成功。ヘッダーに Bearer トークンと Accept が付与されること。"""
    route = respx.get(ENDPOINT).mock(return_value=httpx.Response(200, json=success_payload))
    client = make_client()
    response = await client.fetch_quota()
    assert response.success is True
    assert response.data is not None
    assert response.data.session_used == 75
    request = route.calls.last.request
    assert request.headers["Authorization"] == f"Bearer {API_KEY}"
    assert request.headers["Accept"] == "application/json"


@respx.mock
async def test_cache_short_circuit(success_payload: dict[str, Any]) -> None:
    """TTL 内の 2 回目の取得は API を呼ばず、同一のエンベロープを返すこと。"""
    route = respx.get(ENDPOINT).mock(return_value=httpx.Response(200, json=success_payload))
    client = make_client()
    first = await client.fetch_quota()
    second = await client.fetch_quota()
    assert route.call_count == 1
    assert second is first


@respx.mock
async def test_prepopulated_cache_returned_without_call(success_payload: dict[str, Any]) -> None:
    route = respx.get(ENDPOINT).mock(return_value=httpx.Response(500))
    cache: TtlCache[QuotaResponse] = TtlCache(300)
    cached = QuotaResponse.model_validate(success_payload)
    cache.set(QUOTA_CACHE_KEY, cached)
    client = ZaiQuotaClient(make_config(), cache=cache)
    assert await client.fetch_quota() is cached
    assert route.call_count == 0


@respx.mock
async def test_cache_disabled_always_calls_api(success_payload: dict[str, Any]) -> None:
    route = respx.get(ENDPOINT).mock(return_value=httpx.Response(200, json=success_payload))
    client = make_client(cache_enabled=False)
    await client.fetch_quota()
    await client.fetch_quota()
    assert route.call_count == 2
    assert client.cache is None


@respx.mock
async def test_invalidate_cache_forces_fresh_call(success_payload: dict[str, Any]) -> None:
    route = respx.get(ENDPOINT).mock(return_value=httpx.Response(200, json=success_payload))
    client = make_client()
    await client.fetch_quota()
    client.invalidate_cache()
    await client.fetch_quota()
    assert route.call_count == 2


@respx.mock
async def test_clear_cache_forces_fresh_call(success_payload: dict[str, Any]) -> None:
    route = respx.get(ENDPOINT).mock(return_value=httpx.Response(200, json=success_payload))
    client = make_client()
    await client.fetch_quota()
    client.clear_cache()
    await client.fetch_quota()
    assert route.call_count == 2


@respx.mock
async def test_http_401_authentication_error() -> None:
    respx.get(ENDPOINT).mock(return_value=httpx.Response(401, text="Unauthorized"))
    client = make_client()
    with pytest.raises(ZaiQuotaError) as exc_info:
        await client.fetch_quota()
    assert exc_info.value.kind == ZaiErrorKind.AUTHENTICATION
    assert exc_info.value.status_code == 401


@respx.mock
async def test_http_429_with_retry_after() -> None:
    respx.get(ENDPOINT).mock(return_value=httpx.Response(429, headers={"retry-after": "30"}))
    client = make_client()
    with pytest.raises(ZaiQuotaError) as exc_info:
        await client.fetch_quota()
    assert exc_info.value.kind == ZaiErrorKind.RATE_LIMIT
    assert exc_info.value.retry_after == 30


@respx.mock
async def test_http_429_without_retry_after() -> None:
    respx.get(ENDPOINT).mock(return_value=httpx.Response(429))
    client = make_client()
    with pytest.raises(ZaiQuotaError) as exc_info:
        await client.fetch_quota()
    assert exc_info.value.kind == ZaiErrorKind.RATE_LIMIT
    assert exc_info.value.retry_after is None


@respx.mock
async def test_http_429_non_numeric_retry_after() -> None:
    """HTTP 日付形式の Retry-After は None として扱う。"""
    respx.get(ENDPOINT).mock(
        return_value=httpx.Response(429, headers={"retry-after": "Wed, 21 Oct 2026 07:28:00 GMT"})
    )
    client = make_client()
    with pytest.raises(ZaiQuotaError) as exc_info:
        await client.fetch_quota()
    assert exc_info.value.retry_after is None


@pytest.mark.parametrize(
    ("header", "expected"),
    [("30.5", 30), (" 12 ", 12), ("-5", None), ("inf", None), ("nan", None)],
)
async def test_http_429_retry_after_parsing(header: str, expected: int | None) -> None:
    """小数は切り捨て、負数・非有限値は None。"""
    with respx.mock:
        respx.get(ENDPOINT).mock(return_value=httpx.Response(429, headers={"retry-after": header}))
        client = make_client()
        with pytest.raises(ZaiQuotaError) as exc_info:
            await client.fetch_quota()
    assert exc_info.value.kind == ZaiErrorKind.RATE_LIMIT
    assert exc_info.value.retry_after == expected


@respx.mock
async def test_http_500_network_error() -> None:
    respx.get(ENDPOINT).mock(return_value=httpx.Response(500, text="Internal Server Error"))
    client = make_client()
    with pytest.raises(ZaiQuotaError) as exc_info:
        await client.fetch_quota()
    assert exc_info.value.kind == ZaiErrorKind.NETWORK
    assert exc_info.value.status_code == 500
    assert "HTTP 500" in exc_info.value.message


async def test_connection_error_is_network_error() -> None:
    """レスポンスが無い場合は NETWORK になること。"""
    with respx.mock:
        respx.get(ENDPOINT).mock(side_effect=httpx.ConnectError("Connection refused"))
        client = make_client()
        with pytest.raises(ZaiQuotaError) as exc_info:
            await client.fetch_quota()
        assert exc_info.value.kind == ZaiErrorKind.NETWORK
        assert "Connection refused" in exc_info.value.message
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)


async def test_timeout_is_network_error() -> None:
    with respx.mock:
        respx.get(ENDPOINT).mock(side_effect=httpx.ReadTimeout("timed out"))
        client = make_client(timeout_ms=1500)
        with pytest.raises(ZaiQuotaError) as exc_info:
            await client.fetch_quota()
        assert exc_info.value.kind == ZaiErrorKind.NETWORK
        assert "1500ms" in exc_info.value.message


@respx.mock
async def test_invalid_json_is_validation_error() -> None:
    respx.get(ENDPOINT).mock(return_value=httpx.Response(200, text="<html>oops</html>"))
    client = make_client()
    with pytest.raises(ZaiQuotaError) as exc_info:
        await client.fetch_quota()
    assert exc_info.value.kind == ZaiErrorKind.VALIDATION


@respx.mock
async def test_schema_violation_is_validation_error(success_payload: dict[str, Any]) -> None:
    del success_payload["data"]["mcp_total"]
    respx.get(ENDPOINT).mock(return_value=httpx.Response(200, json=success_payload))
    client = make_client()
    with pytest.raises(ZaiQuotaError) as exc_info:
        await client.fetch_quota()
    assert exc_info.value.kind == ZaiErrorKind.VALIDATION


@respx.mock
async def test_non_finite_numbers_are_validation_error(success_payload: dict[str, Any]) -> None:
    """NaN / Infinity を含む本文は検証エラーとなり、キャッシュされないこと。"""
    success_payload["data"]["session_percent"] = float("nan")
    success_payload["data"]["mcp_time_limit_total"] = float("inf")
    body = json.dumps(success_payload)
    assert "NaN" in body and "Infinity" in body
    respx.get(ENDPOINT).mock(return_value=httpx.Response(200, text=body))
    client = make_client()
    with pytest.raises(ZaiQuotaError) as exc_info:
        await client.fetch_quota()
    assert exc_info.value.kind == ZaiErrorKind.VALIDATION
    assert client.cache is not None
    assert client.cache.size() == 0
    assert exc_info.value.kind == ZaiErrorKind.VALIDATION


@pytest.mark.parametrize("code", [1001, 1002])
async def test_api_auth_codes(code: int) -> None:
    with respx.mock:
        respx.get(ENDPOINT).mock(
            return_value=httpx.Response(
                200,
                json={"code": code, "msg": "Authorization Token Missing", "success": False, "data": None},
            )
        )
        client = make_client()
        with pytest.raises(ZaiQuotaError) as exc_info:
            await client.fetch_quota()
        assert exc_info.value.kind == ZaiErrorKind.AUTHENTICATION
        assert exc_info.value.message == "Authorization Token Missing"


@respx.mock
async def test_api_auth_code_fallback_message() -> None:
    respx.get(ENDPOINT).mock(
        return_value=httpx.Response(200, json={"code": 1002, "msg": "", "success": False})
    )
    client = make_client()
    with pytest.raises(ZaiQuotaError) as exc_info:
        await client.fetch_quota()
    assert exc_info.value.message == "Authentication failed"


@respx.mock
async def test_api_generic_error_is_quota_error() -> None:
    respx.get(ENDPOINT).mock(
        return_value=httpx.Response(
            200, json={"code": 9999, "msg": "Something broke", "success": False, "data": None}
        )
    )
    client = make_client()
    with pytest.raises(ZaiQuotaError) as exc_info:
        await client.fetch_quota()
    assert exc_info.value.kind == ZaiErrorKind.QUOTA
    assert exc_info.value.code == "9999"
    assert str(exc_info.value) == "9999: Something broke"


@respx.mock
async def test_api_error_not_cached() -> None:
    """失敗したレスポンスはキャッシュされないこと。"""
    route = respx.get(ENDPOINT).mock(
        return_value=httpx.Response(200, json={"code": 500, "msg": "error", "success": False})
    )
    client = make_client()
    for _ in range(2):
        with pytest.raises(ZaiQuotaError):
            await client.fetch_quota()
    assert route.call_count == 2
    assert client.cache is not None
    assert client.cache.size() == 0


@respx.mock
async def test_cache_disabled_failure_never_sets() -> None:
    """キャッシュ無効時は失敗しても set が呼ばれないこと。"""
    respx.get(ENDPOINT).mock(return_value=httpx.Response(503))
    spy = MagicMock(wraps=TtlCache(300))
    client = ZaiQuotaClient(make_config(cache_enabled=False), cache=spy)
    with pytest.raises(ZaiQuotaError):
        await client.fetch_quota()
    spy.set.assert_not_called()
    spy.get.assert_not_called()


@respx.mock
async def test_failure_preserves_existing_cache_entry(success_payload: dict[str, Any]) -> None:
    """成功時に保存したエントリは、後続の無関係な失敗で影響を受けないこと。"""
    shared: TtlCache[QuotaResponse] = TtlCache(300)
    respx.get(ENDPOINT).mock(
        side_effect=[
            httpx.Response(200, json=success_payload),
            httpx.ConnectError("Connection refused"),
        ]
    )
    enabled = ZaiQuotaClient(make_config(), cache=shared)
    populated = await enabled.fetch_quota()

    disabled = ZaiQuotaClient(make_config(cache_enabled=False), cache=shared)
    with pytest.raises(ZaiQuotaError):
        await disabled.fetch_quota()

    assert shared.get(QUOTA_CACHE_KEY) is populated
    assert await enabled.fetch_quota() is populated


@respx.mock
async def test_get_quota_summary(success_payload: dict[str, Any]) -> None:
    respx.get(ENDPOINT).mock(return_value=httpx.Response(200, json=success_payload))
    client = make_client()
    summary = await client.get_quota_summary()
    assert summary.sessions.used == 75
    assert summary.sessions.total == 100
    assert summary.sessions.remaining == 25
    assert summary.sessions.percentage == 25
    assert summary.mcp.remaining == 50
    assert summary.mcp_time_limit.remaining == 14400
    assert summary.mcp_time_limit.percentage == 50


@respx.mock
async def test_get_quota_summary_propagates_errors() -> None:
    respx.get(ENDPOINT).mock(return_value=httpx.Response(401))
    client = make_client()
    with pytest.raises(ZaiQuotaError) as exc_info:
        await client.get_quota_summary()
    assert exc_info.value.kind == ZaiErrorKind.AUTHENTICATION


def test_injected_cache_used_when_enabled() -> None:
    cache: TtlCache[QuotaResponse] = TtlCache(10)
    client = ZaiQuotaClient(make_config(), cache=cache)
    assert client.cache is cache


def test_default_cache_uses_configured_ttl() -> None:
    client = make_client(cache_ttl=42)
    assert client.cache is not None
    assert client.cache.ttl == 42


@respx.mock
async def test_logs_do_not_contain_api_key(success_payload: dict[str, Any]) -> None:
    respx.get(ENDPOINT).mock(return_value=httpx.Response(200, json=success_payload))
    with capture_logs() as logs:
        client = make_client()
        await client.fetch_quota()
        await client.fetch_quota()
    events = [entry["event"] for entry in logs]
    assert "quota_fetch_started" in events
    assert "quota_cache_hit" in events
    assert API_KEY not in repr(logs)


@respx.mock
async def test_failure_is_logged() -> None:
    respx.get(ENDPOINT).mock(return_value=httpx.Response(429))
    with capture_logs() as logs:
        client = make_client()
        with pytest.raises(ZaiQuotaError):
            await client.fetch_quota()
    failed = [entry for entry in logs if entry["event"] == "quota_fetch_failed"]
    assert failed[0]["kind"] == "RATE_LIMIT"
    assert failed[0]["log_level"] == "error"
