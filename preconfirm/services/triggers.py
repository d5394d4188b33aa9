"""
Risk Trigger Evaluator

Derives the fixed set of boolean risk signals from a payment decision
request. Pure computation: no I/O, no shared state.
"""

from dataclasses import dataclass, fields
from typing import Any, Dict, List, Mapping, Optional
import logging

from preconfirm.services.config import Settings, get_settings
from preconfirm.services.enums import CopResult
from preconfirm.services.schemas import DecisionRequest

logger = logging.getLogger(__name__)

INVESTMENT_KEYWORDS = ("crypto", "bot", "guaranteed", "MT4", "broker", "trading")

ROMANCE_PRESSURE_ANSWERS = ("pressure_or_secrecy", "keep_secret", "rushed", "screen_share")

CRYPTO_MULE_ANSWERS = ("crypto_exchange", "moving_for_others", "funds_returned")


@dataclass(frozen=True)
class TriggerSet:
    """Named boolean risk signals for one request"""
    new_payee: bool = False
    value_high: bool = False
    pattern_change: bool = False
    investment_keywords: bool = False
    invoice_change: bool = False
    international: bool = False
    romance_pressure: bool = False
    crypto_mule: bool = False
    cop_no_match: bool = False

    def fired(self) -> List[str]:
        """Names of the signals that are set, in declaration order"""
        return [f.name for f in fields(self) if getattr(self, f.name)]

    def as_dict(self) -> Dict[str, bool]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


class TriggerEvaluator:
    """Evaluates every risk trigger for a decision request"""

    def __init__(self, settings: Optional[Settings] = None):
        settings = settings or get_settings()
        self.default_high_value_threshold = settings.high_value_threshold
        self.home_country = settings.home_country
        self.anomaly_threshold = settings.anomaly_threshold

    def evaluate(self, request: DecisionRequest) -> TriggerSet:
        """Compute all triggers; every rule runs on every call"""
        answers = request.answers or {}

        triggers = TriggerSet(
            new_payee=bool(request.payee.is_new),
            value_high=request.amount.value > self.high_value_threshold(request),
            pattern_change=(request.anomaly_score or 0.0) >= self.anomaly_threshold,
            investment_keywords=self.has_investment_keywords(answers),
            invoice_change=bool(request.payee.bank_fingerprint_changed),
            international=self.is_international(request.destination.country),
            romance_pressure=self.any_answer_set(answers, ROMANCE_PRESSURE_ANSWERS),
            crypto_mule=self.any_answer_set(answers, CRYPTO_MULE_ANSWERS),
            cop_no_match=request.cop == CopResult.NO_MATCH,
        )

        logger.debug(f"Triggers for payment {request.payment_id}: {triggers.fired()}")
        return triggers

    def high_value_threshold(self, request: DecisionRequest) -> float:
        """Organisation override if supplied, otherwise the configured default"""
        org = request.context.org
        if org is not None and org.high_value_threshold is not None:
            return org.high_value_threshold
        return self.default_high_value_threshold

    @staticmethod
    def has_investment_keywords(answers: Mapping[str, Any]) -> bool:
        """Explicit answer flag, or a keyword inside any free-text answer"""
        if answers.get("investment_features"):
            return True

        for value in answers.values():
            # Only free-text answers are scanned
            if not isinstance(value, str):
                continue
            lowered = value.lower()
            if any(keyword.lower() in lowered for keyword in INVESTMENT_KEYWORDS):
                return True

        return False

    def is_international(self, country: Optional[str]) -> bool:
        return bool(country) and country != self.home_country

    @staticmethod
    def any_answer_set(answers: Mapping[str, Any], keys) -> bool:
        return any(bool(answers.get(key, False)) for key in keys)
