"""OpenCode の auth.json から API キーを探す"""

from __future__ import annotations

import json
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import structlog

_PROVIDER_NAMES = ("anthropic", "zhipuai", "zai", "z.ai", "glm", "z.ai-glm")
_TOP_LEVEL_NAMES = ("zhipuai", "z.ai", "z.ai-glm")

# 先頭から順に探索する
CANDIDATE_KEY_PATHS: tuple[tuple[str, ...], ...] = tuple(
    ("provider", name, "apiKey") for name in _PROVIDER_NAMES
) + tuple((name, "apiKey") for name in _TOP_LEVEL_NAMES)


def default_auth_paths() -> list[Path]:
    """探索する auth.json の場所（優先順）。"""
    home = Path.home()
    return [
        home / ".config" / "opencode" / "auth.json",
        home / ".local" / "share" / "opencode" / "auth.json",
        Path.cwd() / ".opencode" / "auth.json",
    ]


def _lookup(data: Any, key_path: tuple[str, ...]) -> Any:
    node = data
    for part in key_path:
        if not isinstance(node, dict):
            return None
        node = node.get(part)
    return node


def _key_from_auth(data: Any) -> str | None:
    for key_path in CANDIDATE_KEY_PATHS:
        value = _lookup(data, key_path)
        if isinstance(value, str) and value:
            return value
    return None


def discover_api_key(
    paths: Sequence[Path] | None = None,
) -> tuple[str, Path] | None:
    """最初に見つかった API キーとそのファイルパスを返す。見つからなければ None。

    読めないファイルや不正な JSON はスキップする。
    """
    logger = structlog.stdlib.get_logger("zai_quota.auth")
    for path in default_auth_paths() if paths is None else paths:
        if not path.is_file():
            continue
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.debug("auth_file_unreadable", path=str(path), error=str(e))
            continue
        key = _key_from_auth(data)
        if key is not None:
            logger.debug("auth_key_found", path=str(path))
            return key, path
    return None


def find_api_key(paths: Sequence[Path] | None = None) -> str | None:
    """auth.json から API キーを探す。"""
    found = discover_api_key(paths)
    return found[0] if found is not None else None
