# tests/test_prompts.py
# 提示词组装测试 / Prompt assembly tests

import json
from dataclasses import replace
from datetime import datetime, timezone

import pytest

from arbiter.prompts import (
    DEFAULT_DISPUTE_AMOUNT,
    build_decision_prompt,
    format_case_payload,
    resolve_dispute_amount,
)
from arbiter.utils.json_parser import parse_json_from_llm

NOW = datetime(2026, 10, 18, 10, 0, 0, tzinfo=timezone.utc)


class TestResolveDisputeAmount:
    def test_request_amount_wins(self, case_request):
        assert resolve_dispute_amount(replace(case_request, dispute_amount=75.0)) == 75.0

    def test_amount_from_claim_text(self, case_request):
        request = replace(case_request, dispute_amount=None, statement_of_claim="Refund my $129.99 please")
        assert resolve_dispute_amount(request) == 129.99

    def test_zero_amount_falls_through_to_claim(self, case_request):
        assert resolve_dispute_amount(replace(case_request, dispute_amount=0.0)) == 50.0

    def test_default(self, case_request):
        request = replace(case_request, dispute_amount=None, statement_of_claim="It never came.")
        assert resolve_dispute_amount(request) == DEFAULT_DISPUTE_AMOUNT


class TestBuildDecisionPrompt:
    def test_case_fields_inlined(self, case_request):
        prompt = build_decision_prompt(case_request, "DISP-2026-1-abc123", now=NOW)
        assert "DISPUTE: I paid $50 for headphones and they never arrived." in prompt
        assert "CATEGORY: non_delivery" in prompt
        assert "AMOUNT: $50" in prompt
        assert "DEFENCE: No defence provided" in prompt
        assert "Decision Rendered: 2026-10-18T10:00:00.000Z" in prompt

    def test_compliance_deadline_five_days_out(self, case_request):
        prompt = build_decision_prompt(case_request, "DISP-1", now=NOW)
        assert "Compliance deadline: 2026-10-23T10:00:00.000Z" in prompt
        assert '"compliance_deadline": "2026-10-23T10:00:00.000Z"' in prompt

    def test_defence_included(self, case_request):
        request = replace(case_request, statement_of_defence="Tracking shows delivery.")
        prompt = build_decision_prompt(request, "DISP-1", now=NOW)
        assert "DEFENCE: Tracking shows delivery." in prompt

    def test_explicit_amount_overrides(self, case_request):
        prompt = build_decision_prompt(case_request, "DISP-1", dispute_amount=12.5, now=NOW)
        assert "AMOUNT: $12.5" in prompt
        assert '"amount_usd": 12.5' in prompt

    def test_skeleton_is_valid_json(self, case_request):
        prompt = build_decision_prompt(case_request, "DISP-2026-1-abc123", now=NOW)
        skeleton = parse_json_from_llm(prompt[prompt.rindex("Return JSON"):])
        decision = skeleton["decision"]
        assert decision["dispute_id"] == "DISP-2026-1-abc123"
        assert decision["dispute_category"] == "non_delivery"
        assert decision["remedy_awarded"]["amount_usd"] == 50


class TestFormatCasePayload:
    def test_json_view(self, case_request):
        payload = json.loads(format_case_payload(case_request, "DISP-1"))
        assert payload["dispute_id"] == "DISP-1"
        assert payload["claimant_type"] == "Buyer"
        assert payload["submitted_evidence"] == []

    @pytest.mark.parametrize("claim", ["Le colis n'est jamais arrivé", "包裹没有送达"])
    def test_non_ascii_kept(self, case_request, claim):
        text = format_case_payload(replace(case_request, statement_of_claim=claim), "DISP-1")
        assert claim in text
