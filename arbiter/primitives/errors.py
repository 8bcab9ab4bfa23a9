# errors.py
# =============================================================================
# 裁决流程异常分类 / Adjudication failure taxonomy
#
#   ArbiterError
#   ├── BackendError       LLM 调用失败或返回空文本 / LLM call failed or returned nothing
#   ├── MalformedOutput    恢复后仍无法解析出结构化值 / no structured value even after recovery
#   ├── InvalidRecord      解析成功但缺少必填字段 / decoded but a required field is missing
#   ├── RegistryConflict   重复写入同一案件 ID / duplicate write for a case id
#   └── CaseNotFound       查询不存在的案件 / lookup of an unknown case id
# =============================================================================

"""裁决流程异常。 / Adjudication errors."""

from __future__ import annotations

from typing import Optional


class ArbiterError(Exception):
    """所有裁决异常的基类。 / Base class for all adjudication errors.

    dispute_id 由运行时在异常穿出时补齐，便于调用方定位失败案件。
    / dispute_id is filled in by the runtime so callers can locate the failed case.
    """

    def __init__(self, message: str, dispute_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.dispute_id = dispute_id


class BackendError(ArbiterError):
    """LLM 后端调用失败或返回空内容。 / The LLM backend failed or returned nothing."""


class MalformedOutput(ArbiterError, ValueError):
    """LLM 输出无法解析为 JSON（含截断恢复）。 / LLM output could not be decoded, even after recovery."""

    SNIPPET_LIMIT = 1000

    def __init__(
        self,
        message: str,
        raw_text: str = "",
        position: Optional[int] = None,
        dispute_id: Optional[str] = None,
    ):
        super().__init__(message, dispute_id=dispute_id)
        self.position = position
        self.snippet = (raw_text or "")[: self.SNIPPET_LIMIT]

    def __str__(self) -> str:
        return f"AI response was not valid JSON: {self.message}"


class InvalidRecord(ArbiterError, ValueError):
    """裁决记录缺少必填字段或类型错误。 / Decision record misses a required field or has a wrong type."""

    def __init__(self, field: str, reason: str = "missing", dispute_id: Optional[str] = None):
        super().__init__(f"Invalid decision record: '{field}' is {reason}", dispute_id=dispute_id)
        self.field = field
        self.reason = reason


class RegistryConflict(ArbiterError):
    """同一案件 ID 被重复写入。 / A case id was written twice."""


class CaseNotFound(ArbiterError, KeyError):
    """案件 ID 未登记。 / No case registered under this id."""

    def __str__(self) -> str:
        return self.message
