# tests/engine/test_validator.py
# 裁决记录校验测试 / Decision record validation tests

import json

import pytest

from arbiter.engine.validator import validate_record
from arbiter.primitives.errors import InvalidRecord
from arbiter.primitives.models import DecisionRecord


# =============================================================================
# 合法记录 / Valid records
# =============================================================================

class TestValidRecord:
    def test_full_record(self, decision_payload):
        record = validate_record(decision_payload)
        assert isinstance(record, DecisionRecord)
        assert record.dispute_id == "DISP-2026-1-abc123"
        assert record.dispute_category == "non_delivery"
        assert record.confidence_score == 0.9
        assert record.remedy_awarded.type == "full_refund"
        assert record.remedy_awarded.amount_usd == 50
        assert record.rules_applied == (
            "Article 5.3", "Article 5.4", "Article 7.3", "Article 8.1", "Article 13.1",
        )
        assert record.compliance_deadline == "2026-10-23T10:00:00.000Z"
        assert record.misconduct_flag.any_flagged is False
        assert record.appealable is False

    def test_minimal_record_defaults_optional_fields(self):
        record = validate_record({
            "decision": {
                "dispute_category": "other",
                "confidence_score": 0.5,
                "remedy_awarded": {},
                "finding_summary": "",
            }
        })
        assert record.dispute_id == ""
        assert record.rules_applied == ()
        assert record.remedy_awarded.type == "none"
        assert record.remedy_awarded.amount_usd == 0
        assert record.compliance_deadline is None
        assert record.misconduct_flag.misleading_conduct is False
        assert record.appealable is False

    @pytest.mark.parametrize("score", [0, 1, 0.0, 1.0])
    def test_confidence_bounds_inclusive(self, decision_payload, score):
        decision_payload["decision"]["confidence_score"] = score
        assert validate_record(decision_payload).confidence_score == float(score)

    def test_unknown_category_is_accepted(self, decision_payload):
        decision_payload["decision"]["dispute_category"] = "counterfeit"
        assert validate_record(decision_payload).dispute_category == "counterfeit"

    def test_extra_keys_ignored(self, decision_payload):
        decision_payload["decision"]["judge_mood"] = "stern"
        decision_payload["meta"] = {"x": 1}
        assert validate_record(decision_payload).dispute_category == "non_delivery"

    def test_round_trip_wire_shape(self, decision_payload):
        record = validate_record(decision_payload)
        assert record.to_dict() == decision_payload


# =============================================================================
# 必填字段 / Required fields
# =============================================================================

class TestRequiredFields:
    @pytest.mark.parametrize("key", [
        "dispute_category", "confidence_score", "remedy_awarded", "finding_summary",
    ])
    def test_missing_required_field_named(self, decision_payload, key):
        del decision_payload["decision"][key]
        with pytest.raises(InvalidRecord) as exc_info:
            validate_record(decision_payload)
        assert exc_info.value.field == f"decision.{key}"
        assert exc_info.value.reason == "missing"

    def test_missing_confidence_message(self, decision_payload):
        del decision_payload["decision"]["confidence_score"]
        with pytest.raises(InvalidRecord) as exc_info:
            validate_record(decision_payload)
        assert "decision.confidence_score" in str(exc_info.value)

    def test_null_required_counts_as_missing(self, decision_payload):
        decision_payload["decision"]["finding_summary"] = None
        with pytest.raises(InvalidRecord) as exc_info:
            validate_record(decision_payload)
        assert exc_info.value.field == "decision.finding_summary"

    def test_missing_decision_object(self):
        with pytest.raises(InvalidRecord) as exc_info:
            validate_record({"verdict": {}})
        assert exc_info.value.field == "decision"

    @pytest.mark.parametrize("value", [[1, 2], "text", 3, None])
    def test_non_object_top_level(self, value):
        with pytest.raises(InvalidRecord) as exc_info:
            validate_record(value)
        assert exc_info.value.field == "decision"

    def test_invalid_record_is_value_error(self, decision_payload):
        del decision_payload["decision"]["remedy_awarded"]
        with pytest.raises(ValueError):
            validate_record(decision_payload)


# =============================================================================
# 类型检查（不做类型转换） / Type checks, no coercion
# =============================================================================

class TestTypeChecks:
    @pytest.mark.parametrize("score", ["0.9", True, [0.9]])
    def test_confidence_not_a_number(self, decision_payload, score):
        decision_payload["decision"]["confidence_score"] = score
        with pytest.raises(InvalidRecord) as exc_info:
            validate_record(decision_payload)
        assert exc_info.value.field == "decision.confidence_score"
        assert exc_info.value.reason == "not a number"

    @pytest.mark.parametrize("score", [-0.01, 1.5, 90])
    def test_confidence_out_of_range(self, decision_payload, score):
        decision_payload["decision"]["confidence_score"] = score
        with pytest.raises(InvalidRecord) as exc_info:
            validate_record(decision_payload)
        assert exc_info.value.reason == "outside [0, 1]"

    def test_category_must_be_string(self, decision_payload):
        decision_payload["decision"]["dispute_category"] = 3
        with pytest.raises(InvalidRecord) as exc_info:
            validate_record(decision_payload)
        assert exc_info.value.field == "decision.dispute_category"

    def test_remedy_must_be_object(self, decision_payload):
        decision_payload["decision"]["remedy_awarded"] = "full_refund"
        with pytest.raises(InvalidRecord) as exc_info:
            validate_record(decision_payload)
        assert exc_info.value.field == "decision.remedy_awarded"

    def test_amount_string_not_coerced(self, decision_payload):
        decision_payload["decision"]["remedy_awarded"]["amount_usd"] = "50"
        with pytest.raises(InvalidRecord) as exc_info:
            validate_record(decision_payload)
        assert exc_info.value.field == "decision.remedy_awarded.amount_usd"

    @pytest.mark.parametrize("amount", [10 ** 400, float("inf"), float("nan")])
    def test_amount_must_be_finite(self, decision_payload, amount):
        decision_payload["decision"]["remedy_awarded"]["amount_usd"] = amount
        with pytest.raises(InvalidRecord) as exc_info:
            validate_record(decision_payload)
        assert exc_info.value.field == "decision.remedy_awarded.amount_usd"
        assert exc_info.value.reason == "not a finite number"

    def test_nan_amount_from_decoded_text_rejected(self, decision_payload):
        text = json.dumps(decision_payload).replace('"amount_usd": 50', '"amount_usd": NaN')
        with pytest.raises(InvalidRecord):
            validate_record(json.loads(text))


    def test_rule_entries_must_be_strings(self, decision_payload):
        decision_payload["decision"]["rules_applied"] = ["Article 5.3", 7]
        with pytest.raises(InvalidRecord) as exc_info:
            validate_record(decision_payload)
        assert exc_info.value.field == "decision.rules_applied[1]"

    def test_misconduct_flag_must_be_object(self, decision_payload):
        decision_payload["decision"]["misconduct_flag"] = True
        with pytest.raises(InvalidRecord) as exc_info:
            validate_record(decision_payload)
        assert exc_info.value.field == "decision.misconduct_flag"

    def test_appealable_must_be_bool(self, decision_payload):
        decision_payload["decision"]["appealable"] = "no"
        with pytest.raises(InvalidRecord) as exc_info:
            validate_record(decision_payload)
        assert exc_info.value.field == "decision.appealable"

    def test_misconduct_flags_carried(self, decision_payload):
        decision_payload["decision"]["misconduct_flag"] = {
            "misleading_conduct": True,
            "fraudulent_behavior": False,
            "tier": "Tier 1",
        }
        flags = validate_record(decision_payload).misconduct_flag
        assert flags.misleading_conduct is True
        assert flags.tier == "Tier 1"
        assert flags.any_flagged is True
