# tests/conftest.py
# 共享测试数据 / Shared test fixtures

import copy

import pytest

from arbiter.primitives.models import CaseRequest, ClaimantType

FINDING_SUMMARY = (
    "Decision Rendered: 2026-10-18T10:00:00.000Z\n\n"
    "I. SUMMARY OF DISPUTE\n\n"
    "The Buyer ordered headphones that never arrived.\n\n"
    "II. ESTABLISHED FACTS\n\n"
    "Based on the evidence provided, the Tribunal finds that:\n"
    "• The Buyer paid $50 on 1 October\n"
    "• No tracking number was ever provided\n"
    "• The Seller did not respond to messages\n\n"
    "III. EVIDENCE CONSIDERED\n\n"
    "• Payment receipt – credible\n"
)

DECISION_PAYLOAD = {
    "decision": {
        "dispute_id": "DISP-2026-1-abc123",
        "dispute_category": "non_delivery",
        "rules_applied": ["Article 5.3", "Article 5.4", "Article 7.3", "Article 8.1", "Article 13.1"],
        "confidence_score": 0.9,
        "finding_summary": FINDING_SUMMARY,
        "remedy_awarded": {
            "type": "full_refund",
            "amount_usd": 50,
            "return_required": False,
            "notes": "Remedy pursuant to Article 8.1(a)",
        },
        "compliance_deadline": "2026-10-23T10:00:00.000Z",
        "misconduct_flag": {
            "misleading_conduct": False,
            "fraudulent_behavior": False,
            "tier": None,
        },
        "appealable": False,
    }
}


@pytest.fixture
def decision_payload():
    return copy.deepcopy(DECISION_PAYLOAD)


@pytest.fixture
def case_request():
    return CaseRequest(
        claimant_type=ClaimantType.BUYER,
        statement_of_claim="I paid $50 for headphones and they never arrived.",
        dispute_category="non_delivery",
        dispute_amount=50.0,
    )
