"""共通フィクスチャ"""

import logging
from collections.abc import Iterator
from typing import Any

import pytest
import structlog

ENDPOINT = "https://quota.test/api/monitor/usage/quota/limit"


@pytest.fixture(autouse=True)
def reset_logging() -> Iterator[None]:
    """テスト間で structlog / logging のグローバル設定を持ち越さない。"""
    root = logging.getLogger()
    level = root.level
    yield
    structlog.reset_defaults()
    # new_logger の basicConfig が追加したハンドラーだけを外す
    for handler in [h for h in root.handlers if type(h) is logging.StreamHandler]:
        root.removeHandler(handler)
    root.setLevel(level)


@pytest.fixture
def success_payload() -> dict[str, Any]:
    return {
        "code": 200,
        "msg": "success",
        "success": True,
        "data": {
            "session_used": 75,
            "session_total": 100,
            "session_percent": 25,
            "mcp_used": 150,
            "mcp_total": 200,
            "mcp_percent": 25,
            "mcp_time_limit_used": 14400,
            "mcp_time_limit_total": 28800,
            "mcp_time_limit_percent": 50,
        },
    }


@pytest.fixture
def low_quota_payload() -> dict[str, Any]:
    return {
        "code": 200,
        "msg": "success",
        "success": True,
        "data": {
            "session_used": 95,
            "session_total": 100,
            "session_percent": 5,
            "mcp_used": 190,
            "mcp_total": 200,
            "mcp_percent": 5,
            "mcp_time_limit_used": 27000,
            "mcp_time_limit_total": 28800,
            "mcp_time_limit_percent": 6,
        },
    }
