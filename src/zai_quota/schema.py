"""クォータ API レスポンスのスキーマ定義とバリデーション（pydantic BaseModel）"""

from __future__ import annotations

from typing import Annotated, Any, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictFloat,
    StrictInt,
    StrictStr,
    ValidationError,
    model_validator,
)

from .exceptions import ZaiErrorKind, ZaiQuotaError

# 文字列・真偽値からの暗黙変換は行わない。NaN / Infinity も拒否する
FiniteFloat = Annotated[StrictFloat, Field(allow_inf_nan=False)]
Count = Union[Annotated[StrictInt, Field(ge=0)], Annotated[FiniteFloat, Field(ge=0)]]
Percent = Union[StrictInt, FiniteFloat]


class QuotaData(BaseModel):
    """3 カテゴリ分の使用量。*_percent は残量のパーセンテージ。"""

    model_config = ConfigDict(frozen=True)

    session_used: Count
    session_total: Count
    session_percent: Percent
    mcp_used: Count
    mcp_total: Count
    mcp_percent: Percent
    mcp_time_limit_used: Count
    mcp_time_limit_total: Count
    mcp_time_limit_percent: Percent


class QuotaResponse(BaseModel):
    """API レスポンスのエンベロープ。

    success が false のエラーエンベロープでは data を省略できる。
    data が存在する場合は success に関係なく完全な形である必要がある。
    """

    model_config = ConfigDict(frozen=True)

    code: StrictInt
    msg: StrictStr
    success: StrictBool
    data: QuotaData | None = None

    @model_validator(mode="after")
    def _require_data_on_success(self) -> QuotaResponse:
        if self.success and self.data is None:
            raise ValueError("data is required when success is true")
        return self


def parse_quota_response(payload: Any) -> QuotaResponse:
    """デコード済みペイロードを検証して QuotaResponse を返す。

    Raises:
        ZaiQuotaError: kind=VALIDATION。スキーマに一致しない場合
    """
    try:
        return QuotaResponse.model_validate(payload)
    except ValidationError as e:
        raise ZaiQuotaError(
            ZaiErrorKind.VALIDATION,
            f"Invalid quota response: {e.error_count()} validation error(s)",
            cause=e,
        ) from e
