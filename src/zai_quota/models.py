"""クォータ集計データモデル"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any

from .schema import QuotaData


@dataclass(frozen=True)
class QuotaMetric:
    """1 カテゴリ分の集計値。percentage は残量のパーセンテージ。"""

    used: float
    total: float
    remaining: float
    percentage: float

    @classmethod
    def from_counts(cls, used: float, total: float, percent: float) -> QuotaMetric:
        return cls(used=used, total=total, remaining=total - used, percentage=percent)


@dataclass(frozen=True)
class QuotaSummary:
    """3 カテゴリの集計。リクエストごとに計算し、キャッシュしない。"""

    sessions: QuotaMetric
    mcp: QuotaMetric
    mcp_time_limit: QuotaMetric

    @classmethod
    def from_data(cls, data: QuotaData) -> QuotaSummary:
        return cls(
            sessions=QuotaMetric.from_counts(
                data.session_used, data.session_total, data.session_percent
            ),
            mcp=QuotaMetric.from_counts(data.mcp_used, data.mcp_total, data.mcp_percent),
            mcp_time_limit=QuotaMetric.from_counts(
                data.mcp_time_limit_used,
                data.mcp_time_limit_total,
                data.mcp_time_limit_percent,
            ),
        )

    def min_percentage(self) -> float:
        return min(
            self.sessions.percentage,
            self.mcp.percentage,
            self.mcp_time_limit.percentage,
        )


@dataclass(frozen=True)
class QuotaMetricWithStatus(QuotaMetric):
    """ステータスラベル付きの集計値。"""

    status: str = ""


@dataclass(frozen=True)
class QuotaCheckResult:
    """クォータチェック結果。"""

    sessions: QuotaMetricWithStatus
    mcp: QuotaMetricWithStatus
    mcp_time_limit: QuotaMetricWithStatus
    overall_status: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        """JSON 出力用の辞書を返す。"""
        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat()
        return data


@dataclass(frozen=True)
class QuotaThresholds:
    """アラートしきい値（残量パーセンテージ）。"""

    sessions: float = 20
    mcp: float = 20
    mcp_time_limit: float = 20
