"""
Decision Engine

Maps the trigger set of a payment request to exactly one decision using
strict rule precedence:

1. hard blocks (romance pressure, crypto mule) end evaluation immediately
2. step-up requirements accumulate independently
3. high value or bulk payments require a second approver
4. otherwise allow when nothing accumulated, step up when something did
"""

from dataclasses import dataclass, field
from typing import List, Dict, Any
import logging

from preconfirm.services.enums import Decision, ApprovalRole
from preconfirm.services.schemas import DecisionRequest, DecisionResponse
from preconfirm.services.triggers import TriggerSet

logger = logging.getLogger(__name__)

# Forms
INTL_EXTENSION_FORM = "intl_extension_v1"
INVESTMENT_BLOCK_FORM = "investment_block_v1"

# Actions
OOB_VERIFICATION = "oob_verification_via_known_phone"
UPLOAD_INVOICE = "upload_invoice_pdf"
SUPPORTING_DOCS = "request_supporting_docs"

MESSAGES = {
    "romance_pressure": "Reported coercion/pressure detected. Payment blocked and escalated to fraud team.",
    "crypto_mule": "Potential money mule activity detected. Payment blocked. Please contact support.",
    "international": "International payment requires additional information.",
    "investment_keywords": "Investment-related payment requires FCA verification.",
    "cop_no_match": "Confirmation of Payee failed. Please verify payee details via a known phone number.",
    "invoice_change": "Bank details have changed. Please upload invoice and verify via a known number.",
    "unusual_payment": "This payment is unusual for your account. Additional verification required.",
    "maker_checker": "This payment requires approval from a second authorized person.",
}


@dataclass
class DecisionOutcome:
    """Result of policy resolution for one request"""
    decision: Decision
    required_forms: List[str] = field(default_factory=list)
    required_actions: List[str] = field(default_factory=list)
    messages: List[str] = field(default_factory=list)
    approvals: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Wire representation"""
        return {
            "decision": self.decision.value,
            "requiredForms": list(self.required_forms),
            "requiredActions": list(self.required_actions),
            "messages": list(self.messages),
            "approvals": [dict(approval) for approval in self.approvals],
        }

    def to_response(self) -> DecisionResponse:
        return DecisionResponse(**self.to_dict())


class DecisionEngine:
    """Policy resolver for pre-confirmation checks"""

    def resolve(self, request: DecisionRequest, triggers: TriggerSet) -> DecisionOutcome:
        """Resolve the decision for a request and its evaluated triggers"""

        blocked = self._check_hard_blocks(triggers)
        if blocked is not None:
            logger.info(f"Payment {request.payment_id} blocked: {blocked.messages[0]}")
            return blocked

        outcome = self._accumulate_requirements(triggers)

        if triggers.value_high or request.context.is_bulk:
            outcome.decision = Decision.REQUIRE_MAKER_CHECKER
            outcome.approvals.append({"role": ApprovalRole.CHECKER.value, "required": True})
            outcome.messages.append(MESSAGES["maker_checker"])
            return outcome

        if outcome.required_forms or outcome.required_actions:
            outcome.decision = Decision.STEP_UP
        return outcome

    @staticmethod
    def _check_hard_blocks(triggers: TriggerSet):
        """Terminal block rules, highest precedence first"""

        if triggers.romance_pressure:
            return DecisionOutcome(decision=Decision.BLOCK, messages=[MESSAGES["romance_pressure"]])

        if triggers.crypto_mule:
            return DecisionOutcome(decision=Decision.BLOCK, messages=[MESSAGES["crypto_mule"]])

        return None

    @staticmethod
    def _accumulate_requirements(triggers: TriggerSet) -> DecisionOutcome:
        """Collect forms, actions and messages from every step-up rule"""

        outcome = DecisionOutcome(decision=Decision.ALLOW)
        forms = outcome.required_forms
        actions = outcome.required_actions
        messages = outcome.messages

        if triggers.international:
            forms.append(INTL_EXTENSION_FORM)
            messages.append(MESSAGES["international"])

        if triggers.investment_keywords:
            forms.append(INVESTMENT_BLOCK_FORM)
            messages.append(MESSAGES["investment_keywords"])

        if triggers.cop_no_match and triggers.new_payee:
            actions.append(OOB_VERIFICATION)
            messages.append(MESSAGES["cop_no_match"])

        # May repeat the OOB action added above; duplicates are kept
        if triggers.invoice_change:
            actions.append(UPLOAD_INVOICE)
            actions.append(OOB_VERIFICATION)
            messages.append(MESSAGES["invoice_change"])

        if triggers.value_high or triggers.pattern_change:
            actions.append(SUPPORTING_DOCS)
            messages.append(MESSAGES["unusual_payment"])

        return outcome
