"""Z.ai GLM quota client library."""

__version__ = "1.0.0"

from .agent import QuotaAgent, build_check_result, collect_alerts
from .auth import discover_api_key, find_api_key
from .cache import TtlCache
from .client import QUOTA_CACHE_KEY, ZaiQuotaClient
from .config import (
    QuotaClientConfig,
    ZaiEndpoint,
    load_config,
    load_config_file,
    load_env_file,
)
from .exceptions import ZaiErrorKind, ZaiQuotaError
from .formatter import (
    format_alerts,
    format_metric,
    format_quota_summary,
    format_status,
    format_time,
)
from .logger import new_logger
from .models import (
    QuotaCheckResult,
    QuotaMetric,
    QuotaMetricWithStatus,
    QuotaSummary,
    QuotaThresholds,
)
from .schema import QuotaData, QuotaResponse, parse_quota_response

__all__ = [
    "QUOTA_CACHE_KEY",
    "QuotaAgent",
    "QuotaCheckResult",
    "QuotaClientConfig",
    "QuotaData",
    "QuotaMetric",
    "QuotaMetricWithStatus",
    "QuotaResponse",
    "QuotaSummary",
    "QuotaThresholds",
    "TtlCache",
    "ZaiEndpoint",
    "ZaiErrorKind",
    "ZaiQuotaClient",
    "ZaiQuotaError",
    "build_check_result",
    "collect_alerts",
    "discover_api_key",
    "find_api_key",
    "format_alerts",
    "format_metric",
    "format_quota_summary",
    "format_status",
    "format_time",
    "load_config",
    "load_config_file",
    "load_env_file",
    "new_logger",
    "parse_quota_response",
]
