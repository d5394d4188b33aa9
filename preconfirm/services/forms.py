"""
Form catalog

Static definitions of the question forms referenced by decisions.
"""

from typing import Dict, Any, List
import copy

from preconfirm.services.errors import NotFoundError


def _yes_no(field_id: str, label: str) -> Dict[str, Any]:
    return {"id": field_id, "label": label, "type": "boolean", "required": True}


def _options(*pairs) -> List[Dict[str, str]]:
    return [{"value": value, "label": label} for value, label in pairs]


FORMS: Dict[str, Dict[str, Any]] = {
    "precheck_consumer_v1": {
        "id": "precheck_consumer_v1",
        "version": "1.0.0",
        "title": "A quick check before we send this payment",
        "description": "This payment looks a bit unusual for your account. "
                       "These checks help protect you from fraud and mistakes.",
        "fields": [
            {
                "id": "payee_relationship",
                "label": "Who are you paying?",
                "type": "single_select",
                "required": True,
                "options": _options(
                    ("new", "A new payee"),
                    ("existing", "An existing payee"),
                    ("self", "My own account"),
                ),
            },
            {
                "id": "payment_purpose",
                "label": "What's the purpose of this payment?",
                "type": "single_select",
                "required": True,
                "options": _options(
                    ("gift_family", "Gift or family & friends"),
                    ("goods_services", "Paying for goods or services"),
                    ("investment", "Investment or trading"),
                    ("property", "Property/rent/deposit"),
                    ("loan", "Loan to someone"),
                    ("charity", "Donation/charity"),
                    ("other", "Other"),
                ),
            },
            {
                "id": "details_source",
                "label": "How did you get the payee's bank details?",
                "type": "single_select",
                "required": True,
                "options": _options(
                    ("official_invoice_portal", "Invoice or official website/portal"),
                    ("direct_in_person", "Directly from the person (in person/phone)"),
                    ("message_email_sms", "From email/SMS/WhatsApp/social media"),
                    ("friend_third_party", "From a friend or third party"),
                    ("memory_manual", "Typed from memory"),
                ),
            },
            _yes_no("expect_goods_services", "Do you expect to receive goods/services for this payment?"),
            _yes_no("pressure_or_secrecy", "Has anyone asked you to keep this payment secret or do it urgently?"),
            _yes_no("investment_features", "Is this related to crypto, trading bots, or 'guaranteed returns'?"),
            {
                "id": "attestation",
                "label": "Declaration",
                "type": "checkbox",
                "required": True,
                "text": "I confirm this payment is my decision. I understand bank transfers "
                        "may be irreversible if I've been scammed.",
            },
        ],
    },
    "precheck_business_v1": {
        "id": "precheck_business_v1",
        "version": "1.0.0",
        "title": "Quick supplier checks",
        "description": "We run a brief check for fraud and payment errors.",
        "fields": [
            {
                "id": "payee_type",
                "label": "Payee type",
                "type": "single_select",
                "required": True,
                "options": _options(
                    ("supplier", "Supplier / Vendor"),
                    ("payroll", "Employee / Payroll"),
                    ("tax_duty", "Tax / Duties / HMRC"),
                    ("refund", "Customer refund"),
                    ("intercompany", "Intercompany"),
                    ("professional_fees", "Legal/Accounting/Professional"),
                    ("other", "Other"),
                ),
            },
        ],
    },
    "intl_extension_v1": {
        "id": "intl_extension_v1",
        "title": "International transfer details",
        "fields": [
            {
                "id": "destination_country",
                "label": "Destination country",
                "type": "country",
                "required": True,
            },
            {
                "id": "purpose_code",
                "label": "Purpose code",
                "type": "single_select",
                "required_if": {"destination_country_in": ["AE", "IN", "CN", "BR", "TR", "MX", "ZA"]},
            },
        ],
    },
    "investment_block_v1": {
        "id": "investment_block_v1",
        "title": "Investment risk check",
        "fields": [
            {
                "id": "investment_type",
                "label": "Type of investment",
                "type": "single_select",
                "options": _options(
                    ("listed", "Listed shares/ISA/SIPP"),
                    ("crypto", "Crypto/digital assets"),
                    ("cfd_fx", "CFD/FX platform"),
                    ("managed_account", "'Managed account' or copy-trading"),
                    ("other", "Other"),
                ),
            },
        ],
    },
    "repeat_check_v1": {
        "id": "repeat_check_v1",
        "title": "Confirm repeat payment",
        "fields": [
            _yes_no("purpose_unchanged", "Is the purpose unchanged since last time?"),
        ],
    },
}


class FormCatalog:
    """Lookup of form definitions by id"""

    def __init__(self, forms: Dict[str, Dict[str, Any]] = None):
        self.forms = forms if forms is not None else FORMS

    def get_form(self, form_id: str) -> Dict[str, Any]:
        if form_id not in self.forms:
            raise NotFoundError(f"Unknown form: {form_id}")
        # Callers must not mutate the catalog
        return copy.deepcopy(self.forms[form_id])

    def form_ids(self) -> List[str]:
        return sorted(self.forms)
