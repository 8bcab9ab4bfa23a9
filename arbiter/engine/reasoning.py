# reasoning.py
# =============================================================================
# 推理轨迹合成器：由裁决记录 + 原始请求确定性地生成 4 步推理说明。
# / Reasoning trace synthesizer：derives a deterministic 4-step narrative
#   from the decision record and the original request.
#
# 步骤顺序固定 / Fixed step order:
#   1. Initial Case Assessment      案情初评 / claim preview + category gloss
#   2. Evidence Evaluation          证据评估 / evidence count, defence, facts
#   3. Legal Framework Analysis     规则适用 / applied rules + burden of proof
#   4. Final Decision Formulation   最终裁定 / confidence rationale + remedy
#
# 纯函数：不调用 LLM，也不再调用 JSON 解析器。
# / Pure function: no LLM call, no second pass through the JSON parser.
# =============================================================================

"""推理轨迹合成器。 / Reasoning trace synthesizer."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Tuple

from arbiter.primitives.models import (
    CaseRequest,
    ClaimantType,
    DecisionRecord,
    DisputeCategory,
    ReasoningStep,
)
from arbiter.prompts import resolve_dispute_amount

PREVIEW_LENGTH = 150
MAX_KEY_FINDINGS = 2
MAX_LISTED_RULES = 3

HIGH_CONFIDENCE = 80
MODERATE_CONFIDENCE = 60

# =============================================================================
# 类别描述（按封闭枚举穷举） / Category gloss, exhaustive over the enum
# =============================================================================

CATEGORY_GLOSSES: Dict[DisputeCategory, str] = {
    DisputeCategory.NON_DELIVERY: "The claim involves items that were allegedly not delivered.",
    DisputeCategory.DEFECTIVE_ITEM: "The claim involves allegedly defective merchandise.",
    DisputeCategory.MISREPRESENTATION: "The claim involves alleged misrepresentation of goods/services.",
    DisputeCategory.INCORRECT_ITEM: "The claim involves an item that allegedly differs from what was ordered.",
    DisputeCategory.OTHER: "The claim involves a transaction dispute between parties.",
}

GENERIC_GLOSS = "The claim involves a transaction dispute between parties."

# 规则编号 → 程序性说明 / Rule reference → procedural phrase
_PROVISION_PHRASES: Tuple[Tuple[str, str], ...] = (
    ("Article 5.3", "burden of proof requirements"),
    ("Article 7.3", "incorrect item procedures"),
    ("Article 8.1", "remedy provisions"),
)

_FACTS_SECTION = re.compile(r"ESTABLISHED FACTS[\s\S]*?(?=III\.|$)", re.IGNORECASE)
_BULLET_LINE = re.compile(r"•\s*(.+)")


# =============================================================================
# 置信度理由表（自上而下，首个命中者生效） / Confidence rationale table, first match wins
# =============================================================================


@dataclass(frozen=True)
class ConfidenceSignals:
    """理由选择的全部输入。 / Every input the rationale selection depends on."""

    percent: int
    has_defence: bool
    has_evidence: bool
    misconduct: bool


CONFIDENCE_RATIONALES: Tuple[Tuple[str, Callable[[ConfidenceSignals], bool], str], ...] = (
    (
        "high_no_defence",
        lambda s: s.percent >= HIGH_CONFIDENCE and not s.has_defence,
        "The high confidence stems from the absence of a defence statement, which under "
        "Article 5.4 allows for adverse inference. The uncontested claims and evidence "
        "strongly support this ruling.",
    ),
    (
        "high_misconduct",
        lambda s: s.percent >= HIGH_CONFIDENCE and s.misconduct,
        "The high confidence reflects clear indicators of misconduct identified in the "
        "submitted materials. The evidence overwhelmingly contradicts one party's claims, "
        "making the decision straightforward.",
    ),
    (
        "high_other",
        lambda s: s.percent >= HIGH_CONFIDENCE,
        "The high confidence is due to consistent evidence alignment and clear application "
        "of relevant rules. Both parties' submissions were coherent, but the evidence "
        "strongly favored one side.",
    ),
    (
        "moderate_no_evidence",
        lambda s: s.percent >= MODERATE_CONFIDENCE and not s.has_evidence,
        "The moderate confidence reflects reliance primarily on party statements without "
        "supporting documentation. While the claims appear credible, additional evidence "
        "would have strengthened the determination.",
    ),
    (
        "moderate_other",
        lambda s: s.percent >= MODERATE_CONFIDENCE,
        "The moderate confidence indicates some conflicting elements in the evidence or "
        "partially applicable rules. The preponderance of evidence supports this ruling, "
        "though some uncertainties remain.",
    ),
    (
        "low",
        lambda s: True,
        "The lower confidence reflects significant gaps in evidence or conflicting "
        "statements that could not be fully resolved. This decision represents the most "
        "probable outcome based on available information, but substantial uncertainties exist.",
    ),
)


def confidence_percent(score: float) -> int:
    """置信度百分比，四舍五入（.5 进位）。 / Confidence as a percentage, half rounds up."""
    return int(math.floor(score * 100 + 0.5))


def select_confidence_rationale(signals: ConfidenceSignals) -> Tuple[str, str]:
    """返回 (分支名, 理由句)。 / Return (branch name, rationale sentence)."""
    for name, predicate, sentence in CONFIDENCE_RATIONALES:
        if predicate(signals):
            return name, sentence
    raise AssertionError("rationale table has no catch-all entry")


def category_gloss(category: str) -> str:
    parsed = DisputeCategory.parse(category)
    if parsed is None:
        return GENERIC_GLOSS
    return CATEGORY_GLOSSES[parsed]


# =============================================================================
# 文本工具 / Text helpers
# =============================================================================


def _preview(text: str) -> str:
    """截取前 150 字符并压平换行，超长时追加省略号。 / First 150 chars, newlines collapsed, ellipsis if cut."""
    head = text[:PREVIEW_LENGTH].replace("\n", " ").strip()
    return head + "..." if len(text) > PREVIEW_LENGTH else head


def format_usd(amount: float) -> str:
    if float(amount).is_integer():
        return f"${int(amount)}"
    return f"${amount}"


def extract_key_findings(finding_summary: str) -> List[str]:
    """从 "ESTABLISHED FACTS" 段落中提取要点行。 / Bullet lines of the ESTABLISHED FACTS section."""
    section = _FACTS_SECTION.search(finding_summary or "")
    if not section:
        return []
    return [m.group(1).strip() for m in _BULLET_LINE.finditer(section.group(0))]


def _join_phrases(phrases: List[str]) -> str:
    if len(phrases) == 1:
        return phrases[0]
    if len(phrases) == 2:
        return f"{phrases[0]} and {phrases[1]}"
    return ", ".join(phrases[:-1]) + f", and {phrases[-1]}"


def _remedy_phrase(remedy_type: str, amount: float) -> str:
    if remedy_type == "full_refund":
        return f"Full refund of {format_usd(amount)} ordered."
    if remedy_type == "partial_refund":
        return f"Partial refund of {format_usd(amount)} ordered."
    if remedy_type == "none":
        return "No remedy awarded."
    return f"{remedy_type.replace('_', ' ')} of {format_usd(amount)} ordered."


# =============================================================================
# 四个步骤 / The four steps
# =============================================================================


def _assessment_step(request: CaseRequest, dispute_amount: float) -> ReasoningStep:
    claimant = request.claimant_type.value
    return ReasoningStep(
        step=1,
        title="Initial Case Assessment",
        thought=f"Reviewing the {claimant}'s claim: \"{_preview(request.statement_of_claim)}\"",
        conclusion=(
            f"This is a {request.dispute_category} dispute where the {claimant} seeks "
            f"{format_usd(dispute_amount)}. {category_gloss(request.dispute_category)}"
        ),
    )


def _evidence_step(request: CaseRequest, record: DecisionRecord) -> ReasoningStep:
    if request.evidence_count > 0:
        reviewed = f"{request.evidence_count} piece(s) of submitted evidence"
    else:
        reviewed = "the statements provided"
    defence = _preview(request.statement_of_defence) if request.has_defence else "No defence submitted"

    findings = extract_key_findings(record.finding_summary)[:MAX_KEY_FINDINGS]
    if findings:
        conclusion = "Key findings: " + "; ".join(findings)
    else:
        conclusion = "Evidence has been evaluated for credibility and relevance."
    if record.misconduct_flag.misleading_conduct:
        conclusion += " Note: Indicators of misleading conduct were identified."
    if record.misconduct_flag.fraudulent_behavior:
        conclusion += " Note: Indicators of fraudulent behavior were identified."

    return ReasoningStep(
        step=2,
        title="Evidence Evaluation",
        thought=(
            f"Analyzing {reviewed} along with the "
            f"{request.claimant_type.counterparty.value}'s response: \"{defence}\""
        ),
        conclusion=conclusion,
    )


def _rules_step(request: CaseRequest, record: DecisionRecord) -> ReasoningStep:
    rules = list(record.rules_applied)
    provisions = [phrase for ref, phrase in _PROVISION_PHRASES if ref in rules]
    including = _join_phrases(provisions) if provisions else "the general provisions of the Rules of Procedure"

    listed = ", ".join(rules[:MAX_LISTED_RULES]) if rules else "none cited"
    if len(rules) > MAX_LISTED_RULES:
        listed += f" and {len(rules) - MAX_LISTED_RULES} others"

    if request.claimant_type is ClaimantType.BUYER:
        burden = "The burden of proof rests with the Buyer to substantiate their claim."
    else:
        burden = "The Seller must demonstrate compliance with transaction terms."

    return ReasoningStep(
        step=3,
        title="Legal Framework Analysis",
        thought=(
            f"Applying procedural rules specific to "
            f"{request.dispute_category.replace('_', ' ')} disputes, including {including}."
        ),
        conclusion=f"Applied {len(rules)} relevant rules: {listed}. {burden}",
    )


def _decision_step(request: CaseRequest, record: DecisionRecord) -> ReasoningStep:
    percent = confidence_percent(record.confidence_score)
    _, rationale = select_confidence_rationale(ConfidenceSignals(
        percent=percent,
        has_defence=request.has_defence,
        has_evidence=request.evidence_count > 0,
        misconduct=record.misconduct_flag.any_flagged,
    ))

    if percent >= HIGH_CONFIDENCE:
        weighed = "the strong evidence presented"
    elif percent >= MODERATE_CONFIDENCE:
        weighed = "the preponderance of evidence"
    else:
        weighed = "the available evidence with some uncertainties"

    remedy = record.remedy_awarded
    if remedy.amount_usd > 0:
        prevailing = request.claimant_type
    else:
        prevailing = request.claimant_type.counterparty

    return ReasoningStep(
        step=4,
        title="Final Decision Formulation",
        thought=(
            f"After weighing the evidence against applicable rules, considering {weighed}, "
            f"a determination has been reached. {rationale}"
        ),
        conclusion=(
            f"Ruling in favor of the {prevailing.value}. "
            f"{_remedy_phrase(remedy.type, remedy.amount_usd)} Confidence level: {percent}%."
        ),
    )


def synthesize_reasoning(request: CaseRequest, record: DecisionRecord) -> Tuple[ReasoningStep, ...]:
    """生成固定 4 步的推理轨迹。 / Build the fixed 4-step reasoning trace.

    Args:
        request: 原始案件请求。 / The original case request.
        record: 已校验的裁决记录。 / The validated decision record.

    Returns:
        按 assessment → evidence → rules → decision 顺序的 4 个步骤。
        / Four steps in assessment → evidence → rules → decision order.
    """
    return (
        _assessment_step(request, resolve_dispute_amount(request)),
        _evidence_step(request, record),
        _rules_step(request, record),
        _decision_step(request, record),
    )
