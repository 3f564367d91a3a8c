"""クォータ表示用フォーマッター"""

from __future__ import annotations

from .models import QuotaCheckResult, QuotaMetricWithStatus


def format_status(percentage: float) -> str:
    """残量パーセンテージをステータスラベルに変換する。"""
    if percentage < 10:
        return "🔴 Critical"
    if percentage < 25:
        return "🟡 Low"
    if percentage < 50:
        return "🟠 Moderate"
    return "🟢 Good"


def format_time(seconds: float) -> str:
    """秒数を "1h 30m" / "5m 10s" / "42s" 形式にする。"""
    hours, rest = divmod(int(seconds), 3600)
    minutes, secs = divmod(rest, 60)
    if hours > 0:
        return f"{hours}h {minutes}m"
    if minutes > 0:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


def _number(value: float) -> str:
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return f"{value:,}"


def format_metric(metric: QuotaMetricWithStatus) -> str:
    return (
        f"{_number(metric.used)}/{_number(metric.total)} "
        f"({metric.percentage:.1f}% - {metric.status})"
    )


def format_quota_summary(result: QuotaCheckResult) -> str:
    """チェック結果を人間向けのレポートにする。"""
    sessions = result.sessions
    mcp = result.mcp
    time_limit = result.mcp_time_limit
    updated = result.timestamp.astimezone().strftime("%Y-%m-%d %H:%M:%S")
    lines = [
        "📊 Z.ai GLM Quota Status",
        "=" * 40,
        "",
        "🎯 Sessions:",
        f"  Used: {sessions.used}/{sessions.total} ({sessions.percentage}% remaining)",
        f"  Status: {sessions.status}",
        "",
        "🤖 MCP Calls:",
        f"  Used: {mcp.used}/{mcp.total} ({mcp.percentage}% remaining)",
        f"  Status: {mcp.status}",
        "",
        "⏱️  MCP Time Limit:",
        f"  Used: {format_time(time_limit.used)}/{format_time(time_limit.total)}",
        f"  ({time_limit.percentage}% remaining)",
        f"  Status: {time_limit.status}",
        "",
        f"📈 Overall Status: {result.overall_status}",
        f"🕐 Last Updated: {updated}",
    ]
    return "\n".join(lines)


def format_alerts(alerts: list[str]) -> str:
    if not alerts:
        return "✅ All quotas above threshold"
    return "\n".join(["⚠️  Quota Alerts:", *(f"  {alert}" for alert in alerts)])
