# prompts.py
# =============================================================================
# 裁决提示词：系统提示词、判决书格式说明、JSON 骨架及其组装函数。
# / Adjudication prompts：system prompt, decision format instructions,
#   JSON skeleton and the functions that assemble them.
#
# 骨架中预填案件 ID、类别、金额与履行期限，模型只需补全其余字段。
# / The skeleton is pre-filled with case id, category, amount and
#   compliance deadline; the model fills in the rest.
# =============================================================================

"""裁决提示词模板与组装。 / Adjudication prompt templates and assembly."""

from __future__ import annotations

import json
import re
from datetime import datetime, timedelta, timezone
from typing import Optional

from arbiter.primitives.models import CaseRequest

DEFAULT_DISPUTE_AMOUNT = 100.0
COMPLIANCE_WINDOW = timedelta(days=5)

_AMOUNT_PATTERN = re.compile(r"\$?(\d+(?:\.\d{2})?)")

# =============================================================================
# 系统提示词 / System prompt
# =============================================================================

JUDGE_SYSTEM_PROMPT = """\
You are the AI Judge of an online marketplace dispute tribunal.
You decide disputes between a Buyer and a Seller under the AI Judge Rules of Procedure.
Be impartial, cite the articles you rely on, and state findings of fact before reasoning.
Always answer with a single JSON object and nothing else.
"""

# =============================================================================
# 判决书格式说明 / Decision format instructions
# =============================================================================

DECISION_PROMPT_TEMPLATE = """\
You are an AI judge. Create a complete judicial decision for this dispute.

DISPUTE: {claim}
CATEGORY: {category}
AMOUNT: {amount}
DEFENCE: {defence}

Generate the complete decision text in this EXACT format:

Decision Rendered: {rendered_at}

I. SUMMARY OF DISPUTE

[Write 2-3 sentences summarizing the dispute between buyer and seller]

II. ESTABLISHED FACTS

Based on the evidence provided, the Tribunal finds that:
• [Fact 1 about the dispute]
• [Fact 2 about the dispute]
• [Fact 3 about the dispute]
• [Additional facts as needed]

III. EVIDENCE CONSIDERED

The Tribunal assessed, inter alia:
• [Evidence type 1] – [relevant notes about credibility/weight]
• [Evidence type 2] – [relevant notes about credibility/weight]
• [Additional evidence as needed]

IV. APPLICABLE RULES

This dispute is governed by the following provisions of the AI Judge Rules of Procedure:
• Article 5.3 – Burden of proof on claimant
• Article 5.4 – Adverse inference for withheld evidence
• Article 7.3 – Incorrect item procedures
• Article 8.1 – Remedy provisions
• [Additional relevant articles]

V. TRIBUNAL REASONING

[Write 3-4 paragraphs analyzing the dispute, applying the rules to the facts, and explaining your reasoning]

VI. RULING AND REMEDY

The Tribunal orders [specific remedy description] of {amount} to the [Buyer/Seller].

Compliance deadline: {deadline} pursuant to Article 9.1.

VII. ADDITIONAL NOTES

Misconduct: [None / specific finding]

Confidence Score: [0.00-1.00]

[Additional notes about confidence level and appeal rights if applicable]

Return JSON with the complete formatted decision text:"""

# =============================================================================
# JSON 骨架 / JSON skeleton
# =============================================================================

DECISION_JSON_SKELETON = """\
{{
  "decision": {{
    "dispute_id": "{dispute_id}",
    "dispute_category": "{category}",
    "rules_applied": ["Article 5.3", "Article 5.4", "Article 7.3", "Article 8.1", "Article 13.1", "Article 17"],
    "confidence_score": 0.85,
    "finding_summary": "[PUT THE ENTIRE FORMATTED DECISION TEXT HERE - FROM 'Decision Rendered:' THROUGH THE END OF SECTION VII, INCLUDING ALL BULLET POINTS AND CONTENT]",
    "remedy_awarded": {{
      "type": "full_refund",
      "amount_usd": {amount_value},
      "return_required": false,
      "notes": "Remedy pursuant to Article 8.1(a)"
    }},
    "compliance_deadline": "{deadline}",
    "misconduct_flag": {{
      "misleading_conduct": false,
      "fraudulent_behavior": false,
      "tier": null
    }},
    "appealable": false
  }}
}}"""


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _iso(ts: datetime) -> str:
    return ts.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _amount_text(amount: float) -> str:
    return str(int(amount)) if float(amount).is_integer() else str(amount)


def resolve_dispute_amount(request: CaseRequest) -> float:
    """争议金额：请求给出则用之，否则从诉状中提取首个金额，最后回落到 100。
    / Disputed amount: the request's own value, else the first amount in the
    claim text, else 100.
    """
    if request.dispute_amount:
        return float(request.dispute_amount)
    match = _AMOUNT_PATTERN.search(request.statement_of_claim)
    if match:
        return float(match.group(1))
    return DEFAULT_DISPUTE_AMOUNT


def format_case_payload(request: CaseRequest, dispute_id: str) -> str:
    """案件的结构化 JSON 视图（供审计和日志）。 / Structured JSON view of a case (audit and logs)."""
    return json.dumps(
        {
            "dispute_id": dispute_id,
            "claimant_type": request.claimant_type.value,
            "statement_of_claim": request.statement_of_claim,
            "statement_of_defence": request.statement_of_defence,
            "dispute_category": request.dispute_category,
            "submitted_evidence": list(request.submitted_evidence),
        },
        indent=2,
        ensure_ascii=False,
    )


def build_decision_prompt(
    request: CaseRequest,
    dispute_id: str,
    dispute_amount: Optional[float] = None,
    now: Optional[datetime] = None,
) -> str:
    """组装发送给 LLM 的完整提示词（格式说明 + JSON 骨架）。
    / Assemble the full prompt sent to the LLM (format instructions + JSON skeleton).
    """
    now = now or _utc_now()
    amount = resolve_dispute_amount(request) if dispute_amount is None else dispute_amount
    deadline = _iso(now + COMPLIANCE_WINDOW)

    instructions = DECISION_PROMPT_TEMPLATE.format(
        claim=request.statement_of_claim,
        category=request.dispute_category,
        amount=f"${_amount_text(amount)}",
        defence=request.statement_of_defence if request.has_defence else "No defence provided",
        rendered_at=_iso(now),
        deadline=deadline,
    )
    skeleton = DECISION_JSON_SKELETON.format(
        dispute_id=dispute_id,
        category=request.dispute_category,
        amount_value=_amount_text(amount),
        deadline=deadline,
    )
    return instructions + "\n\n" + skeleton
