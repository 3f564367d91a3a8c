"""zai_quota の例外型定義"""

from __future__ import annotations

from enum import StrEnum


class ZaiErrorKind(StrEnum):
    """ZaiQuotaError の種別。呼び出し側は match で分岐する。"""

    CONFIG = "CONFIG_ERROR"
    AUTHENTICATION = "AUTH_ERROR"
    RATE_LIMIT = "RATE_LIMIT"
    NETWORK = "NETWORK_ERROR"
    VALIDATION = "VALIDATION_ERROR"
    QUOTA = "QUOTA_ERROR"


class ZaiQuotaError(Exception):
    """zai_quota のエラー。

    kind ごとの付加情報:
        RATE_LIMIT: retry_after（秒、ヘッダーが無い場合は None）
        QUOTA: code に API の数値コードを文字列化して保持
        NETWORK: HTTP ステータス起因の場合は status_code
    """

    def __init__(
        self,
        kind: ZaiErrorKind,
        message: str,
        *,
        code: str | None = None,
        retry_after: int | None = None,
        status_code: int | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.code = code if code is not None else kind.value
        self.retry_after = retry_after
        self.status_code = status_code
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"
