"""クォータクライアント設定と読み込み"""

from __future__ import annotations

import os
from collections.abc import Mapping
from enum import StrEnum
from pathlib import Path
from typing import Any

import yaml
from dotenv import dotenv_values
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidatorFunctionWrapHandler,
    model_validator,
)

from .exceptions import ZaiErrorKind, ZaiQuotaError


class ZaiEndpoint(StrEnum):
    """Z.ai クォータ API エンドポイント。"""

    INTERNATIONAL = "https://api.z.ai/api/monitor/usage/quota/limit"
    DOMESTIC = "https://open.bigmodel.cn/api/monitor/usage/quota/limit"


class QuotaClientConfig(BaseModel):
    """クォータクライアント設定。

    直接生成した場合も load_config 経由の場合も、不正値は
    ZaiQuotaError(kind=CONFIG) として報告される。
    """

    model_config = ConfigDict(frozen=True)

    api_key: str = Field(min_length=1, repr=False)
    endpoint: str = Field(default=ZaiEndpoint.INTERNATIONAL.value, min_length=1)
    timeout_ms: int = Field(default=10000, gt=0)
    cache_enabled: bool = True
    cache_ttl: int = Field(default=300, gt=0)

    @model_validator(mode="wrap")
    @classmethod
    def _as_config_error(cls, data: Any, handler: ValidatorFunctionWrapHandler) -> QuotaClientConfig:
        try:
            return handler(data)
        except ValidationError as e:
            raise ZaiQuotaError(
                ZaiErrorKind.CONFIG,
                f"Config validation failed: {e}",
                cause=e,
            ) from e

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000

    def to_safe_dict(self) -> dict[str, Any]:
        """API キーを伏せた辞書を返す。"""
        data = self.model_dump()
        data["api_key"] = f"{self.api_key[:8]}..."
        return data


# フィールド名 → 環境変数名
ENV_VARS: dict[str, str] = {
    "api_key": "ZAI_API_KEY",
    "endpoint": "ZAI_ENDPOINT",
    "timeout_ms": "ZAI_TIMEOUT",
    "cache_enabled": "ZAI_CACHE_ENABLED",
    "cache_ttl": "ZAI_CACHE_TTL",
}

# 設定ファイルのキー（camelCase / snake_case）→ フィールド名
_FILE_KEYS: dict[str, str] = {
    "apiKey": "api_key",
    "api_key": "api_key",
    "endpoint": "endpoint",
    "timeout": "timeout_ms",
    "timeout_ms": "timeout_ms",
    "cacheEnabled": "cache_enabled",
    "cache_enabled": "cache_enabled",
    "cacheTTL": "cache_ttl",
    "cache_ttl": "cache_ttl",
}


def load_config(
    *,
    api_key: str | None = None,
    endpoint: str | None = None,
    timeout_ms: int | None = None,
    cache_enabled: bool | None = None,
    cache_ttl: int | None = None,
    environ: Mapping[str, str] | None = None,
) -> QuotaClientConfig:
    """引数 > 環境変数 > デフォルト の優先順位で設定を解決する。

    environ を省略した場合は os.environ を参照する。

    Raises:
        ZaiQuotaError: kind=CONFIG。必須値の欠落や不正値の場合
    """
    env = os.environ if environ is None else environ
    explicit: dict[str, Any] = {
        "api_key": api_key,
        "endpoint": endpoint,
        "timeout_ms": timeout_ms,
        "cache_enabled": cache_enabled,
        "cache_ttl": cache_ttl,
    }
    data: dict[str, Any] = {}
    for name, value in explicit.items():
        if value is not None:
            data[name] = value
        elif ENV_VARS[name] in env:
            data[name] = env[ENV_VARS[name]]

    if "api_key" not in data:
        raise ZaiQuotaError(
            ZaiErrorKind.CONFIG,
            "API key is required. Set ZAI_API_KEY environment variable or pass api_key.",
        )
    return QuotaClientConfig.model_validate(data)


def _read_config_file(path: Path) -> dict[str, Any]:
    """YAML / JSON の設定ファイルを読み込む。"""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ZaiQuotaError(
            ZaiErrorKind.CONFIG,
            f"Failed to read config file: {path}",
            cause=e,
        ) from e
    try:
        data = yaml.safe_load(text) or {}
    except yaml.YAMLError as e:
        raise ZaiQuotaError(
            ZaiErrorKind.CONFIG,
            f"Failed to parse config file: {path}",
            cause=e,
        ) from e
    if not isinstance(data, dict):
        raise ZaiQuotaError(
            ZaiErrorKind.CONFIG,
            f"Config file must contain a mapping: {path}",
        )
    return data


def load_config_file(
    path: Path | str,
    environ: Mapping[str, str] | None = None,
) -> QuotaClientConfig:
    """設定ファイルを読み込んで QuotaClientConfig を返す。

    ファイルの値は引数として扱われ、環境変数より優先される。
    """
    path = Path(path)
    raw = _read_config_file(path)
    unknown = sorted(k for k in raw if k not in _FILE_KEYS)
    if unknown:
        raise ZaiQuotaError(
            ZaiErrorKind.CONFIG,
            f"Unknown config option(s) in {path}: {', '.join(unknown)}",
        )
    options = {_FILE_KEYS[k]: v for k, v in raw.items()}
    return load_config(**options, environ=environ)


def load_env_file(
    path: Path | str,
    environ: Mapping[str, str] | None = None,
) -> QuotaClientConfig:
    """dotenv ファイルを読み込んで QuotaClientConfig を返す。

    既存の環境変数はファイルの値より優先される。
    """
    path = Path(path)
    if not path.is_file():
        raise ZaiQuotaError(
            ZaiErrorKind.CONFIG,
            f"Env file not found: {path}",
        )
    file_values = {k: v for k, v in dotenv_values(path).items() if v is not None}
    env = os.environ if environ is None else environ
    return load_config(environ={**file_values, **env})
