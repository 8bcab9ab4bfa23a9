# models.py
# =============================================================================
# 本模块定义裁决引擎的核心数据模型。
# 包含：ClaimantType、DisputeCategory、CaseRequest、RemedyAwarded、
#       MisconductFlag、DecisionRecord、ReasoningStep、CaseEntry、CaseSummary。
# 除输入请求外，所有结构在产生后不可变。
# / Core data models of the adjudication engine. Everything except the
#   incoming request payload is immutable once produced.
# =============================================================================

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class ClaimantType(str, Enum):
    """提起争议的一方。 / The party raising the dispute."""

    BUYER = "Buyer"
    SELLER = "Seller"

    @property
    def counterparty(self) -> "ClaimantType":
        if self is ClaimantType.BUYER:
            return ClaimantType.SELLER
        return ClaimantType.BUYER


class DisputeCategory(str, Enum):
    """已知争议类别（封闭枚举）。 / Known dispute categories (closed set)."""

    NON_DELIVERY = "non_delivery"
    DEFECTIVE_ITEM = "defective_item"
    MISREPRESENTATION = "misrepresentation"
    INCORRECT_ITEM = "incorrect_item"
    OTHER = "other"

    @classmethod
    def parse(cls, value: str) -> Optional["DisputeCategory"]:
        """精确匹配类别；未知类别返回 None。 / Exact match; None for unknown strings."""
        try:
            return cls(value)
        except ValueError:
            return None


@dataclass(frozen=True)
class CaseRequest:
    """案件请求：收到后不可变。 / Case request, immutable once received.

    dispute_category 保留原始字符串：未知类别不在入口拒绝，
    而是在推理阶段走通用描述。
    / dispute_category keeps the raw string: unknown categories are not
      rejected here, they get the generic gloss during reasoning.
    """

    claimant_type: ClaimantType
    statement_of_claim: str
    dispute_category: str
    statement_of_defence: str = ""
    dispute_amount: Optional[float] = None
    submitted_evidence: Tuple[Any, ...] = ()

    @property
    def has_defence(self) -> bool:
        return bool(self.statement_of_defence and self.statement_of_defence.strip())

    @property
    def evidence_count(self) -> int:
        return len(self.submitted_evidence)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> CaseRequest:
        """从请求字典构建，形状错误时抛出 ValueError。 / Build from a request dict; ValueError on bad shape."""
        try:
            claimant = ClaimantType(data.get("claimant_type"))
        except ValueError:
            raise ValueError(
                f"claimant_type must be 'Buyer' or 'Seller', got {data.get('claimant_type')!r}"
            ) from None

        claim = data.get("statement_of_claim")
        if not isinstance(claim, str) or not claim.strip():
            raise ValueError("statement_of_claim is required")

        category = data.get("dispute_category")
        if not isinstance(category, str) or not category.strip():
            raise ValueError("dispute_category is required")

        defence = data.get("statement_of_defence") or ""
        if not isinstance(defence, str):
            raise ValueError("statement_of_defence must be a string")

        amount = data.get("dispute_amount")
        if amount is not None:
            if isinstance(amount, bool) or not isinstance(amount, (int, float)):
                raise ValueError("dispute_amount must be a number")
            try:
                amount = float(amount)
            except OverflowError:
                raise ValueError("dispute_amount must be a finite number") from None
            if not math.isfinite(amount):
                raise ValueError("dispute_amount must be a finite number")

        evidence = data.get("submitted_evidence") or []
        if not isinstance(evidence, (list, tuple)):
            raise ValueError("submitted_evidence must be a list")

        return cls(
            claimant_type=claimant,
            statement_of_claim=claim,
            dispute_category=category.strip(),
            statement_of_defence=defence,
            dispute_amount=amount,
            submitted_evidence=tuple(evidence),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "claimant_type": self.claimant_type.value,
            "statement_of_claim": self.statement_of_claim,
            "statement_of_defence": self.statement_of_defence,
            "dispute_category": self.dispute_category,
            "dispute_amount": self.dispute_amount,
            "submitted_evidence": list(self.submitted_evidence),
        }


@dataclass(frozen=True)
class RemedyAwarded:
    """裁定的救济措施。 / Awarded remedy."""

    type: str = "none"
    amount_usd: float = 0.0
    return_required: bool = False
    notes: str = ""


@dataclass(frozen=True)
class MisconductFlag:
    """不当行为标记。 / Misconduct flags."""

    misleading_conduct: bool = False
    fraudulent_behavior: bool = False
    tier: Optional[Any] = None

    @property
    def any_flagged(self) -> bool:
        return self.misleading_conduct or self.fraudulent_behavior


@dataclass(frozen=True)
class DecisionRecord:
    """经校验的裁决记录。 / Validated decision record.

    to_dict() 输出的字段名与嵌套结构是对外兼容契约，不可改动。
    / The field names and nesting emitted by to_dict() are an external
      compatibility contract.
    """

    dispute_id: str
    dispute_category: str
    confidence_score: float
    finding_summary: str
    remedy_awarded: RemedyAwarded
    rules_applied: Tuple[str, ...] = ()
    compliance_deadline: Optional[str] = None
    misconduct_flag: MisconductFlag = field(default_factory=MisconductFlag)
    appealable: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "decision": {
                "dispute_id": self.dispute_id,
                "dispute_category": self.dispute_category,
                "rules_applied": list(self.rules_applied),
                "confidence_score": self.confidence_score,
                "finding_summary": self.finding_summary,
                "remedy_awarded": {
                    "type": self.remedy_awarded.type,
                    "amount_usd": self.remedy_awarded.amount_usd,
                    "return_required": self.remedy_awarded.return_required,
                    "notes": self.remedy_awarded.notes,
                },
                "compliance_deadline": self.compliance_deadline,
                "misconduct_flag": {
                    "misleading_conduct": self.misconduct_flag.misleading_conduct,
                    "fraudulent_behavior": self.misconduct_flag.fraudulent_behavior,
                    "tier": self.misconduct_flag.tier,
                },
                "appealable": self.appealable,
            }
        }


@dataclass(frozen=True)
class ReasoningStep:
    """推理轨迹中的一步。 / One step of a reasoning trace."""

    step: int
    title: str
    thought: str
    conclusion: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "step": self.step,
            "title": self.title,
            "thought": self.thought,
            "conclusion": self.conclusion,
        }


@dataclass(frozen=True)
class CaseSummary:
    """案件列表投影。 / Listing projection of a case."""

    dispute_id: str
    timestamp: str
    category: str
    claimant_type: str
    confidence: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dispute_id": self.dispute_id,
            "timestamp": self.timestamp,
            "category": self.category,
            "claimant_type": self.claimant_type,
            "confidence": self.confidence,
        }


@dataclass(frozen=True)
class CaseEntry:
    """登记簿中的完整案件。 / A completed case as held by the registry."""

    dispute_id: str
    timestamp: str  # 收到请求的 ISO 时间 / ISO receipt time
    request: CaseRequest
    prompt_sent: str
    decision: DecisionRecord
    reasoning_steps: Tuple[ReasoningStep, ...]
    processing_time_ms: int

    def summary(self) -> CaseSummary:
        return CaseSummary(
            dispute_id=self.dispute_id,
            timestamp=self.timestamp,
            category=self.request.dispute_category,
            claimant_type=self.request.claimant_type.value,
            confidence=self.decision.confidence_score,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dispute_id": self.dispute_id,
            "timestamp": self.timestamp,
            "input_data": self.request.to_dict(),
            "prompt_sent": self.prompt_sent,
            "ai_response": self.decision.to_dict(),
            "reasoning_steps": [s.to_dict() for s in self.reasoning_steps],
            "processing_time_ms": self.processing_time_ms,
        }
