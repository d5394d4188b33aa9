"""
Test suite for the risk triggers and the decision engine

Covers every trigger rule, rule precedence and the reference scenarios.
"""

import pytest
from pydantic import ValidationError as SchemaValidationError

from preconfirm.services.engine import (
    DecisionEngine, MESSAGES, OOB_VERIFICATION, SUPPORTING_DOCS, UPLOAD_INVOICE
)
from preconfirm.services.enums import Decision
from preconfirm.services.schemas import DecisionRequest
from preconfirm.services.triggers import TriggerEvaluator, TriggerSet


class TestTriggerEvaluator:
    """Test individual trigger rules"""

    @pytest.fixture
    def evaluator(self, settings):
        return TriggerEvaluator(settings)

    def test_quiet_request_fires_nothing(self, evaluator, make_request):
        triggers = evaluator.evaluate(make_request())
        assert triggers.fired() == []
        assert triggers == TriggerSet()

    def test_new_payee(self, evaluator, make_request):
        request = make_request(payee={"id": "p1", "isNew": True})
        assert evaluator.evaluate(request).new_payee is True

    def test_new_payee_defaults_false(self, evaluator, make_request):
        request = make_request(payee={"id": "p1"})
        assert evaluator.evaluate(request).new_payee is False

    def test_value_high_uses_default_threshold(self, evaluator, make_request):
        # Strictly greater than the threshold
        assert evaluator.evaluate(make_request(amount={"currency": "GBP", "value": 10000})).value_high is False
        assert evaluator.evaluate(make_request(amount={"currency": "GBP", "value": 10000.01})).value_high is True

    def test_value_high_uses_org_threshold(self, evaluator, make_request):
        request = make_request(
            amount={"currency": "GBP", "value": 600},
            context={"org": {"high_value_threshold": 500}},
        )
        assert evaluator.evaluate(request).value_high is True

        request = make_request(
            amount={"currency": "GBP", "value": 20000},
            context={"org": {"high_value_threshold": 50000}},
        )
        assert evaluator.evaluate(request).value_high is False

    def test_no_currency_conversion(self, evaluator, make_request):
        request = make_request(amount={"currency": "JPY", "value": 9000})
        assert evaluator.evaluate(request).value_high is False

    @pytest.mark.parametrize("score,expected", [
        (None, False),
        (0.0, False),
        (0.79, False),
        (0.8, True),
        (1.0, True),
    ])
    def test_pattern_change(self, evaluator, make_request, score, expected):
        request = make_request(anomalyScore=score)
        assert evaluator.evaluate(request).pattern_change is expected

    def test_pattern_change_accepts_snake_case_alias(self, evaluator, make_request):
        request = make_request(anomaly_score=0.95)
        assert evaluator.evaluate(request).pattern_change is True

    def test_investment_flag(self, evaluator, make_request):
        request = make_request(answers={"investment_features": True})
        assert evaluator.evaluate(request).investment_keywords is True

    @pytest.mark.parametrize("text", [
        "Buying CRYPTO for my pension",
        "my broker said so",
        "guaranteed 20% returns",
        "uses an mt4 account",
        "a trading bot",
    ])
    def test_investment_keywords_in_free_text(self, evaluator, make_request, text):
        request = make_request(answers={"payment_purpose_detail": text})
        assert evaluator.evaluate(request).investment_keywords is True

    def test_investment_keywords_skip_non_strings(self, evaluator, make_request):
        request = make_request(answers={
            "count": 3,
            "flags": ["crypto"],
            "nested": {"note": "broker"},
            "nothing": None,
            "note": "rent for March",
        })
        assert evaluator.evaluate(request).investment_keywords is False

    def test_invoice_change(self, evaluator, make_request):
        request = make_request(payee={"id": "p1", "bankFingerprintChanged": True})
        assert evaluator.evaluate(request).invoice_change is True

    def test_international(self, evaluator, make_request):
        assert evaluator.evaluate(make_request(destination={"country": "FR"})).international is True
        assert evaluator.evaluate(make_request(destination={"country": "GB"})).international is False

    @pytest.mark.parametrize("key", ["pressure_or_secrecy", "keep_secret", "rushed", "screen_share"])
    def test_romance_pressure(self, evaluator, make_request, key):
        triggers = evaluator.evaluate(make_request(answers={key: True}))
        assert triggers.romance_pressure is True
        assert triggers.crypto_mule is False

    @pytest.mark.parametrize("key", ["crypto_exchange", "moving_for_others", "funds_returned"])
    def test_crypto_mule(self, evaluator, make_request, key):
        triggers = evaluator.evaluate(make_request(answers={key: True}))
        assert triggers.crypto_mule is True
        assert triggers.romance_pressure is False

    def test_false_answers_do_not_fire(self, evaluator, make_request):
        request = make_request(answers={"rushed": False, "crypto_exchange": False})
        triggers = evaluator.evaluate(request)
        assert triggers.romance_pressure is False
        assert triggers.crypto_mule is False

    @pytest.mark.parametrize("cop,expected", [
        ("no_match", True),
        ("match", False),
        ("close_match", False),
        ("not_supported", False),
        (None, False),
    ])
    def test_cop_no_match(self, evaluator, make_request, cop, expected):
        assert evaluator.evaluate(make_request(cop=cop)).cop_no_match is expected

    def test_fired_keeps_declaration_order(self):
        triggers = TriggerSet(cop_no_match=True, new_payee=True, international=True)
        assert triggers.fired() == ["new_payee", "international", "cop_no_match"]


class TestDecisionEngine:
    """Test rule precedence and outcomes"""

    @pytest.fixture
    def evaluator(self, settings):
        return TriggerEvaluator(settings)

    @pytest.fixture
    def engine(self):
        return DecisionEngine()

    def decide(self, evaluator, engine, request):
        return engine.resolve(request, evaluator.evaluate(request))

    def test_scenario_a_allow(self, evaluator, engine, make_request):
        outcome = self.decide(evaluator, engine, make_request())

        assert outcome.decision == Decision.ALLOW
        assert outcome.required_forms == []
        assert outcome.required_actions == []
        assert outcome.messages == []
        assert outcome.approvals == []

    def test_scenario_b_high_value_requires_checker(self, evaluator, engine, make_request):
        request = make_request(
            amount={"currency": "GBP", "value": 50000},
            context={"org": {"high_value_threshold": 10000}, "isBulk": False},
        )
        outcome = self.decide(evaluator, engine, request)

        assert outcome.decision == Decision.REQUIRE_MAKER_CHECKER
        assert outcome.approvals == [{"role": "checker", "required": True}]
        assert MESSAGES["maker_checker"] in outcome.messages
        assert MESSAGES["unusual_payment"] in outcome.messages
        assert outcome.required_actions == [SUPPORTING_DOCS]

    def test_scenario_c_pressure_blocks(self, evaluator, engine, make_request):
        outcome = self.decide(evaluator, engine, make_request(answers={"pressure_or_secrecy": True}))

        assert outcome.decision == Decision.BLOCK
        assert outcome.messages == [MESSAGES["romance_pressure"]]
        assert outcome.messages[0].startswith("Reported coercion/pressure detected")
        assert outcome.required_forms == []
        assert outcome.required_actions == []
        assert outcome.approvals == []

    def test_scenario_d_cop_no_match_new_payee_steps_up(self, evaluator, engine, make_request):
        request = make_request(cop="no_match", payee={"id": "p1", "isNew": True})
        outcome = self.decide(evaluator, engine, request)

        assert outcome.decision == Decision.STEP_UP
        assert OOB_VERIFICATION in outcome.required_actions

    def test_cop_no_match_existing_payee_allows(self, evaluator, engine, make_request):
        outcome = self.decide(evaluator, engine, make_request(cop="no_match"))
        assert outcome.decision == Decision.ALLOW

    def test_hard_block_beats_everything(self, engine, make_request):
        everything = TriggerSet(
            new_payee=True, value_high=True, pattern_change=True, investment_keywords=True,
            invoice_change=True, international=True, romance_pressure=True,
            crypto_mule=True, cop_no_match=True,
        )
        outcome = engine.resolve(make_request(context={"isBulk": True}), everything)

        assert outcome.decision == Decision.BLOCK
        assert outcome.messages == [MESSAGES["romance_pressure"]]
        assert outcome.required_forms == []
        assert outcome.required_actions == []
        assert outcome.approvals == []

    def test_crypto_mule_block_message(self, engine, make_request):
        outcome = engine.resolve(make_request(), TriggerSet(crypto_mule=True, international=True))

        assert outcome.decision == Decision.BLOCK
        assert outcome.messages == [MESSAGES["crypto_mule"]]

    def test_bulk_requires_checker_without_high_value(self, evaluator, engine, make_request):
        outcome = self.decide(evaluator, engine, make_request(context={"isBulk": True}))

        assert outcome.decision == Decision.REQUIRE_MAKER_CHECKER
        assert outcome.approvals == [{"role": "checker", "required": True}]
        assert outcome.messages == [MESSAGES["maker_checker"]]
        assert outcome.required_actions == []

    def test_maker_checker_keeps_accumulated_requirements(self, engine, make_request):
        triggers = TriggerSet(value_high=True, international=True, investment_keywords=True)
        outcome = engine.resolve(make_request(), triggers)

        assert outcome.decision == Decision.REQUIRE_MAKER_CHECKER
        assert outcome.required_forms == ["intl_extension_v1", "investment_block_v1"]
        assert outcome.required_actions == [SUPPORTING_DOCS]
        assert outcome.messages[-1] == MESSAGES["maker_checker"]

    def test_invoice_change_duplicates_oob_action(self, engine, make_request):
        triggers = TriggerSet(cop_no_match=True, new_payee=True, invoice_change=True)
        outcome = engine.resolve(make_request(), triggers)

        assert outcome.decision == Decision.STEP_UP
        assert outcome.required_actions == [OOB_VERIFICATION, UPLOAD_INVOICE, OOB_VERIFICATION]
        assert outcome.messages == [MESSAGES["cop_no_match"], MESSAGES["invoice_change"]]

    def test_pattern_change_alone_steps_up(self, engine, make_request):
        outcome = engine.resolve(make_request(), TriggerSet(pattern_change=True))

        assert outcome.decision == Decision.STEP_UP
        assert outcome.required_actions == [SUPPORTING_DOCS]
        assert outcome.approvals == []

    def test_forms_only_step_up(self, engine, make_request):
        outcome = engine.resolve(make_request(), TriggerSet(international=True))

        assert outcome.decision == Decision.STEP_UP
        assert outcome.required_forms == ["intl_extension_v1"]
        assert outcome.required_actions == []

    def test_new_payee_alone_allows(self, engine, make_request):
        outcome = engine.resolve(make_request(), TriggerSet(new_payee=True))
        assert outcome.decision == Decision.ALLOW
        assert outcome.messages == []

    def test_resolution_is_deterministic(self, evaluator, engine, make_request):
        request = make_request(
            amount={"currency": "GBP", "value": 25000},
            destination={"country": "US"},
            payee={"id": "p1", "isNew": True, "bankFingerprintChanged": True},
            cop="no_match",
            anomalyScore=0.9,
            answers={"note": "trading account"},
        )
        first = self.decide(evaluator, engine, request)
        second = self.decide(evaluator, engine, request)

        assert first.to_dict() == second.to_dict()

    def test_wire_format(self, engine, make_request):
        outcome = engine.resolve(make_request(), TriggerSet(value_high=True))
        wire = outcome.to_dict()

        assert set(wire) == {"decision", "requiredForms", "requiredActions", "messages", "approvals"}
        assert wire["decision"] == "require_maker_checker"
        assert outcome.to_response().decision == Decision.REQUIRE_MAKER_CHECKER


class TestRequestValidation:
    """Boundary validation of decision requests"""

    def test_country_must_be_two_characters(self, make_request):
        with pytest.raises(SchemaValidationError):
            make_request(destination={"country": "GBR"})

    def test_amount_cannot_be_negative(self, make_request):
        with pytest.raises(SchemaValidationError):
            make_request(amount={"currency": "GBP", "value": -1})

    def test_unknown_cop_rejected(self, make_request):
        with pytest.raises(SchemaValidationError):
            make_request(cop="maybe")

    def test_anomaly_score_range(self, make_request):
        with pytest.raises(SchemaValidationError):
            make_request(anomalyScore=1.5)

    def test_payment_id_required(self):
        with pytest.raises(SchemaValidationError):
            DecisionRequest.model_validate({
                "userId": "u1",
                "amount": {"currency": "GBP", "value": 1},
                "destination": {"country": "GB"},
                "payee": {"id": "p1"},
            })

    def test_context_keeps_extension_keys(self, make_request):
        request = make_request(context={"isBulk": True, "channel": "mobile"})

        assert request.context.is_bulk is True
        assert request.context.model_extra == {"channel": "mobile"}
