# tests/engine/test_reasoning.py
# 推理轨迹合成测试 / Reasoning trace synthesis tests

from dataclasses import replace

import pytest

from arbiter.engine.reasoning import (
    CATEGORY_GLOSSES,
    CONFIDENCE_RATIONALES,
    GENERIC_GLOSS,
    ConfidenceSignals,
    category_gloss,
    confidence_percent,
    extract_key_findings,
    format_usd,
    select_confidence_rationale,
    synthesize_reasoning,
)
from arbiter.engine.validator import validate_record
from arbiter.primitives.models import (
    CaseRequest,
    ClaimantType,
    DisputeCategory,
    MisconductFlag,
    RemedyAwarded,
)


@pytest.fixture
def record(decision_payload):
    return validate_record(decision_payload)


# =============================================================================
# 轨迹结构 / Trace shape
# =============================================================================

class TestTraceShape:
    def test_four_steps_in_order(self, case_request, record):
        steps = synthesize_reasoning(case_request, record)
        assert [s.step for s in steps] == [1, 2, 3, 4]
        assert [s.title for s in steps] == [
            "Initial Case Assessment",
            "Evidence Evaluation",
            "Legal Framework Analysis",
            "Final Decision Formulation",
        ]

    def test_deterministic(self, case_request, record):
        assert synthesize_reasoning(case_request, record) == synthesize_reasoning(case_request, record)

    def test_steps_serialize(self, case_request, record):
        first = synthesize_reasoning(case_request, record)[0].to_dict()
        assert set(first) == {"step", "title", "thought", "conclusion"}


# =============================================================================
# 各步骤文本 / Per-step text
# =============================================================================

class TestBuyerNonDelivery:
    def test_assessment(self, case_request, record):
        step = synthesize_reasoning(case_request, record)[0]
        assert step.thought == (
            "Reviewing the Buyer's claim: \"I paid $50 for headphones and they never arrived.\""
        )
        assert step.conclusion == (
            "This is a non_delivery dispute where the Buyer seeks $50. "
            "The claim involves items that were allegedly not delivered."
        )

    def test_evidence(self, case_request, record):
        step = synthesize_reasoning(case_request, record)[1]
        assert step.thought == (
            "Analyzing the statements provided along with the Seller's response: \"No defence submitted\""
        )
        assert step.conclusion == (
            "Key findings: The Buyer paid $50 on 1 October; No tracking number was ever provided"
        )

    def test_rules(self, case_request, record):
        step = synthesize_reasoning(case_request, record)[2]
        assert step.thought == (
            "Applying procedural rules specific to non delivery disputes, including "
            "burden of proof requirements, incorrect item procedures, and remedy provisions."
        )
        assert step.conclusion == (
            "Applied 5 relevant rules: Article 5.3, Article 5.4, Article 7.3 and 2 others. "
            "The burden of proof rests with the Buyer to substantiate their claim."
        )

    def test_decision(self, case_request, record):
        step = synthesize_reasoning(case_request, record)[3]
        assert step.thought.startswith(
            "After weighing the evidence against applicable rules, considering "
            "the strong evidence presented, a determination has been reached. "
            "The high confidence stems from the absence of a defence statement"
        )
        assert step.conclusion == "Ruling in favor of the Buyer. Full refund of $50 ordered. Confidence level: 90%."


class TestSellerWithDefence:
    @pytest.fixture
    def seller_request(self):
        return CaseRequest(
            claimant_type=ClaimantType.SELLER,
            statement_of_claim="The buyer says the lamp was broken but it left our warehouse intact.",
            dispute_category="defective_item",
            statement_of_defence="It arrived\nin pieces.",
            submitted_evidence=({"type": "photo"}, {"type": "invoice"}),
        )

    @pytest.fixture
    def seller_record(self, record):
        return replace(
            record,
            dispute_category="defective_item",
            confidence_score=0.65,
            rules_applied=("Article 5.3",),
            finding_summary="No structured facts here.",
            remedy_awarded=RemedyAwarded(type="none", amount_usd=0),
            misconduct_flag=MisconductFlag(misleading_conduct=True, fraudulent_behavior=True),
        )

    def test_amount_falls_back_to_default(self, seller_request, seller_record):
        step = synthesize_reasoning(seller_request, seller_record)[0]
        assert "the Seller seeks $100." in step.conclusion
        assert step.conclusion.endswith("The claim involves allegedly defective merchandise.")

    def test_evidence_count_and_defence_preview(self, seller_request, seller_record):
        step = synthesize_reasoning(seller_request, seller_record)[1]
        assert step.thought == (
            "Analyzing 2 piece(s) of submitted evidence along with the Buyer's response: "
            "\"It arrived in pieces.\""
        )

    def test_misconduct_notes(self, seller_request, seller_record):
        step = synthesize_reasoning(seller_request, seller_record)[1]
        assert step.conclusion == (
            "Evidence has been evaluated for credibility and relevance."
            " Note: Indicators of misleading conduct were identified."
            " Note: Indicators of fraudulent behavior were identified."
        )

    def test_single_provision_and_seller_burden(self, seller_request, seller_record):
        step = synthesize_reasoning(seller_request, seller_record)[2]
        assert step.thought.endswith("including burden of proof requirements.")
        assert step.conclusion == (
            "Applied 1 relevant rules: Article 5.3. "
            "The Seller must demonstrate compliance with transaction terms."
        )

    def test_zero_remedy_rules_for_counterparty(self, seller_request, seller_record):
        step = synthesize_reasoning(seller_request, seller_record)[3]
        assert "considering the preponderance of evidence" in step.thought
        assert "moderate confidence indicates some conflicting elements" in step.thought
        assert step.conclusion == "Ruling in favor of the Buyer. No remedy awarded. Confidence level: 65%."


class TestEdgeCases:
    def test_unknown_category_uses_generic_gloss(self, case_request, record):
        request = replace(case_request, dispute_category="counterfeit")
        steps = synthesize_reasoning(request, record)
        assert steps[0].conclusion.endswith(GENERIC_GLOSS)
        assert "specific to counterfeit disputes" in steps[2].thought

    def test_long_claim_preview_truncated(self, case_request, record):
        request = replace(case_request, statement_of_claim="a" * 200)
        thought = synthesize_reasoning(request, record)[0].thought
        assert thought == "Reviewing the Buyer's claim: \"" + "a" * 150 + "...\""

    def test_no_rules_cited(self, case_request, record):
        steps = synthesize_reasoning(case_request, replace(record, rules_applied=()))
        assert "the general provisions of the Rules of Procedure" in steps[2].thought
        assert steps[2].conclusion.startswith("Applied 0 relevant rules: none cited.")

    def test_partial_refund_with_cents(self, case_request, record):
        partial = replace(record, remedy_awarded=RemedyAwarded(type="partial_refund", amount_usd=12.5))
        step = synthesize_reasoning(case_request, partial)[3]
        assert "Partial refund of $12.5 ordered." in step.conclusion
        assert step.conclusion.startswith("Ruling in favor of the Buyer.")

    def test_unrecognized_remedy_type(self, case_request, record):
        other = replace(record, remedy_awarded=RemedyAwarded(type="store_credit", amount_usd=20))
        assert "store credit of $20 ordered." in synthesize_reasoning(case_request, other)[3].conclusion

    def test_low_confidence(self, case_request, record):
        step = synthesize_reasoning(case_request, replace(record, confidence_score=0.3))[3]
        assert "the available evidence with some uncertainties" in step.thought
        assert "The lower confidence reflects significant gaps" in step.thought
        assert step.conclusion.endswith("Confidence level: 30%.")


# =============================================================================
# 置信度理由表 / Confidence rationale table
# =============================================================================

class TestConfidenceRationale:
    @pytest.mark.parametrize("signals, expected", [
        (ConfidenceSignals(90, has_defence=False, has_evidence=True, misconduct=True), "high_no_defence"),
        (ConfidenceSignals(80, has_defence=True, has_evidence=True, misconduct=True), "high_misconduct"),
        (ConfidenceSignals(95, has_defence=True, has_evidence=False, misconduct=False), "high_other"),
        (ConfidenceSignals(79, has_defence=False, has_evidence=False, misconduct=True), "moderate_no_evidence"),
        (ConfidenceSignals(60, has_defence=True, has_evidence=True, misconduct=False), "moderate_other"),
        (ConfidenceSignals(59, has_defence=False, has_evidence=False, misconduct=True), "low"),
        (ConfidenceSignals(0, has_defence=True, has_evidence=True, misconduct=False), "low"),
    ])
    def test_first_matching_branch(self, signals, expected):
        name, sentence = select_confidence_rationale(signals)
        assert name == expected
        assert sentence

    def test_table_ends_with_catch_all(self):
        name, predicate, _ = CONFIDENCE_RATIONALES[-1]
        assert name == "low"
        assert predicate(ConfidenceSignals(100, True, True, True))

    def test_branch_names_unique(self):
        names = [name for name, _, _ in CONFIDENCE_RATIONALES]
        assert len(names) == len(set(names))

    @pytest.mark.parametrize("score, percent", [
        (0.0, 0), (0.125, 13), (0.6, 60), (0.8, 80), (0.9, 90), (1.0, 100),
    ])
    def test_confidence_percent_rounds_half_up(self, score, percent):
        assert confidence_percent(score) == percent


# =============================================================================
# 辅助函数 / Helpers
# =============================================================================

class TestHelpers:
    def test_every_category_has_gloss(self):
        assert set(CATEGORY_GLOSSES) == set(DisputeCategory)

    @pytest.mark.parametrize("category", [c.value for c in DisputeCategory])
    def test_known_category_gloss(self, category):
        assert category_gloss(category) == CATEGORY_GLOSSES[DisputeCategory(category)]

    def test_category_match_is_exact(self):
        assert category_gloss("Non_Delivery") == GENERIC_GLOSS

    @pytest.mark.parametrize("amount, text", [(50, "$50"), (50.0, "$50"), (49.99, "$49.99")])
    def test_format_usd(self, amount, text):
        assert format_usd(amount) == text

    def test_extract_key_findings(self, record):
        assert extract_key_findings(record.finding_summary) == [
            "The Buyer paid $50 on 1 October",
            "No tracking number was ever provided",
            "The Seller did not respond to messages",
        ]

    def test_extract_key_findings_without_section(self):
        assert extract_key_findings("• stray bullet") == []
        assert extract_key_findings("") == []

    def test_facts_section_runs_to_end_without_section_three(self):
        text = "II. ESTABLISHED FACTS\n• only fact"
        assert extract_key_findings(text) == ["only fact"]
