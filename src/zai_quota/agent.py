"""エージェント向けのクォータチェック"""

from __future__ import annotations

import structlog

from .client import ZaiQuotaClient
from .formatter import format_quota_summary, format_status
from .models import (
    QuotaCheckResult,
    QuotaMetric,
    QuotaMetricWithStatus,
    QuotaSummary,
    QuotaThresholds,
)


def _with_status(metric: QuotaMetric) -> QuotaMetricWithStatus:
    return QuotaMetricWithStatus(
        used=metric.used,
        total=metric.total,
        remaining=metric.remaining,
        percentage=metric.percentage,
        status=format_status(metric.percentage),
    )


def build_check_result(summary: QuotaSummary) -> QuotaCheckResult:
    """集計にステータスラベルを付与する。全体ステータスは最小残量で決まる。"""
    return QuotaCheckResult(
        sessions=_with_status(summary.sessions),
        mcp=_with_status(summary.mcp),
        mcp_time_limit=_with_status(summary.mcp_time_limit),
        overall_status=format_status(summary.min_percentage()),
    )


def collect_alerts(
    result: QuotaCheckResult,
    thresholds: QuotaThresholds | None = None,
) -> list[str]:
    """しきい値を下回ったカテゴリのアラート文を返す。"""
    thresholds = thresholds or QuotaThresholds()
    alerts: list[str] = []
    if result.sessions.percentage < thresholds.sessions:
        alerts.append(
            f"⚠️  Session quota low: {result.sessions.percentage}% remaining "
            f"({result.sessions.remaining}/{result.sessions.total})"
        )
    if result.mcp.percentage < thresholds.mcp:
        alerts.append(
            f"⚠️  MCP quota low: {result.mcp.percentage}% remaining "
            f"({result.mcp.remaining}/{result.mcp.total})"
        )
    if result.mcp_time_limit.percentage < thresholds.mcp_time_limit:
        alerts.append(
            f"⚠️  MCP time limit low: {result.mcp_time_limit.percentage}% remaining"
        )
    return alerts


class QuotaAgent:
    """OpenCode などのエージェントから呼び出すクォータチェッカー。"""

    def __init__(
        self,
        client: ZaiQuotaClient,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self._client = client
        self._logger = logger or structlog.stdlib.get_logger("zai_quota.agent")

    @property
    def client(self) -> ZaiQuotaClient:
        return self._client

    async def check_quota(self, force_refresh: bool = False) -> QuotaCheckResult:
        """クォータを取得してステータス付きの結果を返す。

        force_refresh 指定時はキャッシュを破棄してから API を呼ぶ。
        """
        self._logger.info("quota_check_started", force_refresh=force_refresh)
        if force_refresh:
            self._client.clear_cache()
        summary = await self._client.get_quota_summary()
        result = build_check_result(summary)
        self._logger.info("quota_check_completed", overall_status=result.overall_status)
        return result

    async def get_formatted_quota(self) -> str:
        return format_quota_summary(await self.check_quota())

    async def is_quota_low(self, threshold: float = 20) -> bool:
        """いずれかのカテゴリの残量が threshold を下回るか。"""
        result = await self.check_quota()
        return (
            result.sessions.percentage < threshold
            or result.mcp.percentage < threshold
            or result.mcp_time_limit.percentage < threshold
        )

    async def get_quota_alerts(
        self,
        thresholds: QuotaThresholds | None = None,
    ) -> list[str]:
        return collect_alerts(await self.check_quota(), thresholds)

    def clear_cache(self) -> None:
        self._client.clear_cache()
