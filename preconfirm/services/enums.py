"""Enumerations shared by the schemas, the ORM models and the engine."""

from enum import Enum


class Decision(str, Enum):
    ALLOW = "allow"
    STEP_UP = "step_up"
    BLOCK = "block"
    REQUIRE_MAKER_CHECKER = "require_maker_checker"


class CopResult(str, Enum):
    """Confirmation of Payee outcomes"""
    MATCH = "match"
    CLOSE_MATCH = "close_match"
    NO_MATCH = "no_match"
    NOT_SUPPORTED = "not_supported"


class ApprovalRole(str, Enum):
    MAKER = "maker"
    CHECKER = "checker"


class ApprovalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class DocumentType(str, Enum):
    INVOICE = "invoice"
    CONTRACT = "contract"
    PO = "po"
    SCREENSHOT = "screenshot"
