"""zai_quota と zai-quota CLI 用の structlog 設定"""

from __future__ import annotations

import logging
import sys

import structlog

# 出力形式に関係なく先頭に付与するプロセッサー
_COMMON_PROCESSORS: list[structlog.types.Processor] = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.filter_by_level,
    structlog.processors.add_log_level,
    structlog.processors.TimeStamper(fmt="iso"),
]


def new_logger(
    level: str = "INFO",
    format: str = "text",
    name: str = "zai_quota",
) -> structlog.stdlib.BoundLogger:
    """クォータ取得イベント用のロガーを構成して返す。

    レポートや JSON を書き出す標準出力とは分けるため、ログは常に標準エラー出力へ送る。
    呼び出すたびにルートロガーを再構成するので、CLI の -v / LOG_LEVEL がそのまま反映される。

    Args:
        level: ログレベル名。未知の名前は INFO として扱う
        format: "json" で 1 行 JSON、それ以外はプレーンテキスト
        name: 取得するロガー名
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=log_level,
        force=True,
    )

    renderer: list[structlog.types.Processor]
    if format == "json":
        renderer = [structlog.processors.StackInfoRenderer(), structlog.processors.JSONRenderer()]
    else:
        renderer = [structlog.dev.ConsoleRenderer(colors=False)]

    structlog.configure(
        processors=[*_COMMON_PROCESSORS, *renderer],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    return structlog.stdlib.get_logger(name)
