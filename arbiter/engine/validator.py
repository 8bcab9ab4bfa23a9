"""裁决记录校验器。 / Decision record validator.

解析出的 JSON 只有通过这里才会被系统其余部分信任。必填字段缺失或类型不符时
抛出 InvalidRecord，绝不补默认值、绝不做类型转换；可选字段仅在缺失时取默认值。
/ Decoded JSON is trusted only after passing here. Missing or mistyped
required fields raise InvalidRecord; nothing is coerced and required fields
are never defaulted. Optional fields default only when absent.
"""

import math
from typing import Any, Dict, List, Optional

from arbiter.primitives.errors import InvalidRecord
from arbiter.primitives.models import DecisionRecord, MisconductFlag, RemedyAwarded


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_finite(value: Any) -> bool:
    try:
        return math.isfinite(value)
    except OverflowError:
        return False


def _require(obj: Dict[str, Any], key: str, kind: type, path: str) -> Any:
    if key not in obj or obj[key] is None:
        raise InvalidRecord(path)
    value = obj[key]
    if not isinstance(value, kind):
        raise InvalidRecord(path, f"not a {kind.__name__}")
    return value


def _optional(obj: Dict[str, Any], key: str, kind: type, path: str, default: Any) -> Any:
    value = obj.get(key)
    if value is None:
        return default
    if not isinstance(value, kind):
        raise InvalidRecord(path, f"not a {kind.__name__}")
    return value


def _validate_rules(decision: Dict[str, Any]) -> List[str]:
    rules = _optional(decision, "rules_applied", list, "decision.rules_applied", [])
    for i, rule in enumerate(rules):
        if not isinstance(rule, str):
            raise InvalidRecord(f"decision.rules_applied[{i}]", "not a str")
    return rules


def _validate_remedy(remedy: Dict[str, Any]) -> RemedyAwarded:
    amount = remedy.get("amount_usd")
    if amount is None:
        amount = 0
    elif not _is_number(amount):
        raise InvalidRecord("decision.remedy_awarded.amount_usd", "not a number")
    elif not _is_finite(amount):
        raise InvalidRecord("decision.remedy_awarded.amount_usd", "not a finite number")

    return RemedyAwarded(
        type=_optional(remedy, "type", str, "decision.remedy_awarded.type", "none"),
        amount_usd=amount,
        return_required=_optional(
            remedy, "return_required", bool, "decision.remedy_awarded.return_required", False
        ),
        notes=_optional(remedy, "notes", str, "decision.remedy_awarded.notes", ""),
    )


def _validate_misconduct(flags: Optional[Dict[str, Any]]) -> MisconductFlag:
    if flags is None:
        return MisconductFlag()
    if not isinstance(flags, dict):
        raise InvalidRecord("decision.misconduct_flag", "not a dict")
    return MisconductFlag(
        misleading_conduct=_optional(
            flags, "misleading_conduct", bool, "decision.misconduct_flag.misleading_conduct", False
        ),
        fraudulent_behavior=_optional(
            flags, "fraudulent_behavior", bool, "decision.misconduct_flag.fraudulent_behavior", False
        ),
        tier=flags.get("tier"),
    )


def validate_record(value: Any) -> DecisionRecord:
    """校验解码值并构建 DecisionRecord。 / Validate a decoded value and build a DecisionRecord.

    必填 / Required: decision.dispute_category (str), decision.confidence_score
    (number in [0, 1]), decision.remedy_awarded (object), decision.finding_summary (str).

    Raises:
        InvalidRecord: 缺失或类型错误的字段，field 为点分路径。
            / A missing or mistyped field; ``field`` is its dotted path.
    """
    if not isinstance(value, dict):
        raise InvalidRecord("decision", "not inside a JSON object")
    decision = _require(value, "decision", dict, "decision")

    category = _require(decision, "dispute_category", str, "decision.dispute_category")

    score = decision.get("confidence_score")
    if score is None:
        raise InvalidRecord("decision.confidence_score")
    if not _is_number(score):
        raise InvalidRecord("decision.confidence_score", "not a number")
    if not 0.0 <= score <= 1.0:
        raise InvalidRecord("decision.confidence_score", "outside [0, 1]")

    remedy = _require(decision, "remedy_awarded", dict, "decision.remedy_awarded")
    summary = _require(decision, "finding_summary", str, "decision.finding_summary")

    return DecisionRecord(
        dispute_id=_optional(decision, "dispute_id", str, "decision.dispute_id", ""),
        dispute_category=category,
        confidence_score=float(score),
        finding_summary=summary,
        remedy_awarded=_validate_remedy(remedy),
        rules_applied=tuple(_validate_rules(decision)),
        compliance_deadline=_optional(
            decision, "compliance_deadline", str, "decision.compliance_deadline", None
        ),
        misconduct_flag=_validate_misconduct(decision.get("misconduct_flag")),
        appealable=_optional(decision, "appealable", bool, "decision.appealable", False),
    )
