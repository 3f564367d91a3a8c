"""Z.ai クォータ HTTP クライアント実装"""

from __future__ import annotations

import math

import httpx
import structlog

from .cache import TtlCache
from .config import QuotaClientConfig
from .exceptions import ZaiErrorKind, ZaiQuotaError
from .models import QuotaSummary
from .schema import QuotaResponse, parse_quota_response

QUOTA_CACHE_KEY = "quota"

# アプリケーションレベルの認証エラーコード
AUTH_ERROR_CODES = frozenset({1001, 1002})


def _parse_retry_after(value: str | None) -> int | None:
    """Retry-After ヘッダーを秒数として解釈する。

    小数は切り捨てる。数値でない値 (HTTP-date 形式を含む)、負数、非有限値は None。
    """
    if value is None:
        return None
    try:
        seconds = float(value)
    except ValueError:
        return None
    if not math.isfinite(seconds) or seconds < 0:
        return None
    return int(seconds)


class ZaiQuotaClient:
    """httpx を使ったクォータ取得クライアント。

    キャッシュ確認 → API 呼び出し → エラー分類 → スキーマ検証 → キャッシュ保存
    の順に処理する。リトライは行わない。
    """

    def __init__(
        self,
        config: QuotaClientConfig,
        cache: TtlCache[QuotaResponse] | None = None,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self._config = config
        self._cache: TtlCache[QuotaResponse] | None = None
        if config.cache_enabled:
            self._cache = cache if cache is not None else TtlCache(config.cache_ttl)
        self._logger = logger or structlog.stdlib.get_logger("zai_quota.client")
        self._headers = {
            "Authorization": f"Bearer {config.api_key}",
            "Accept": "application/json",
        }
        self._logger.debug(
            "quota_client_initialized",
            endpoint=config.endpoint,
            cache_enabled=config.cache_enabled,
            timeout_ms=config.timeout_ms,
        )

    @property
    def config(self) -> QuotaClientConfig:
        return self._config

    @property
    def cache(self) -> TtlCache[QuotaResponse] | None:
        """キャッシュ無効時は None。"""
        return self._cache

    def _make_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            headers=self._headers,
            timeout=self._config.timeout_seconds,
        )

    def _fail(self, error: ZaiQuotaError) -> ZaiQuotaError:
        self._logger.error(
            "quota_fetch_failed",
            kind=error.kind.value,
            code=error.code,
            status_code=error.status_code,
            error=error.message,
        )
        return error

    def _handle_status(self, resp: httpx.Response) -> None:
        if resp.is_success:
            return
        if resp.status_code == 401:
            raise self._fail(
                ZaiQuotaError(
                    ZaiErrorKind.AUTHENTICATION,
                    "Invalid API key",
                    status_code=401,
                )
            )
        if resp.status_code == 429:
            raise self._fail(
                ZaiQuotaError(
                    ZaiErrorKind.RATE_LIMIT,
                    "Rate limit exceeded",
                    retry_after=_parse_retry_after(resp.headers.get("retry-after")),
                    status_code=429,
                )
            )
        raise self._fail(
            ZaiQuotaError(
                ZaiErrorKind.NETWORK,
                f"HTTP {resp.status_code}: {resp.reason_phrase}",
                status_code=resp.status_code,
            )
        )

    def _parse_body(self, resp: httpx.Response) -> QuotaResponse:
        try:
            payload = resp.json()
        except ValueError as e:
            raise self._fail(
                ZaiQuotaError(
                    ZaiErrorKind.VALIDATION,
                    f"Response body is not valid JSON: {e}",
                    cause=e,
                )
            ) from e
        try:
            return parse_quota_response(payload)
        except ZaiQuotaError as e:
            self._fail(e)
            raise

    def _handle_api_error(self, parsed: QuotaResponse) -> None:
        if parsed.success:
            return
        if parsed.code in AUTH_ERROR_CODES:
            raise self._fail(
                ZaiQuotaError(
                    ZaiErrorKind.AUTHENTICATION,
                    parsed.msg or "Authentication failed",
                )
            )
        raise self._fail(
            ZaiQuotaError(
                ZaiErrorKind.QUOTA,
                parsed.msg or "API returned error",
                code=str(parsed.code),
            )
        )

    async def fetch_quota(self) -> QuotaResponse:
        """クォータを取得する。有効なキャッシュがあれば API を呼ばずに返す。

        Raises:
            ZaiQuotaError: 取得・検証に失敗した場合。失敗時はキャッシュを変更しない
        """
        if self._cache is not None:
            cached = self._cache.get(QUOTA_CACHE_KEY)
            if cached is not None:
                self._logger.debug("quota_cache_hit")
                return cached

        self._logger.info("quota_fetch_started", endpoint=self._config.endpoint)
        try:
            async with self._make_client() as client:
                resp = await client.get(self._config.endpoint)
        except httpx.TimeoutException as e:
            raise self._fail(
                ZaiQuotaError(
                    ZaiErrorKind.NETWORK,
                    f"Request timed out after {self._config.timeout_ms}ms: {e}",
                    cause=e,
                )
            ) from e
        except httpx.HTTPError as e:
            raise self._fail(
                ZaiQuotaError(
                    ZaiErrorKind.NETWORK,
                    f"No response from server: {type(e).__name__}: {e}",
                    cause=e,
                )
            ) from e

        self._handle_status(resp)
        parsed = self._parse_body(resp)
        self._handle_api_error(parsed)

        if self._cache is not None:
            self._cache.set(QUOTA_CACHE_KEY, parsed)
            self._logger.debug("quota_cached", ttl=self._cache.ttl)
        self._logger.info("quota_fetch_succeeded")
        return parsed

    async def get_quota_summary(self) -> QuotaSummary:
        """クォータを取得し、カテゴリごとの残量を計算する。"""
        response = await self.fetch_quota()
        if response.data is None:
            # success=true のレスポンスはスキーマ上 data を必ず持つ
            raise ZaiQuotaError(ZaiErrorKind.VALIDATION, "Quota response has no data")
        return QuotaSummary.from_data(response.data)

    def invalidate_cache(self) -> None:
        """クォータのキャッシュエントリを削除する。次回の取得は API を呼ぶ。"""
        if self._cache is not None:
            self._cache.invalidate(QUOTA_CACHE_KEY)
            self._logger.debug("quota_cache_invalidated")

    def clear_cache(self) -> None:
        if self._cache is not None:
            self._cache.clear()
            self._logger.debug("quota_cache_cleared")
