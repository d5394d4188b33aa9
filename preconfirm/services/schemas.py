"""
Request and response schemas for the pre-confirmation API.

Requests are validated here, before the decision pipeline sees them.
Field names are snake_case in Python and camelCase on the wire.
"""

from pydantic import BaseModel, ConfigDict, Field, AliasChoices
from typing import List, Optional, Dict, Any
from datetime import datetime

from preconfirm.services.enums import (
    Decision, CopResult, ApprovalRole, ApprovalStatus, DocumentType
)


class WireModel(BaseModel):
    """Base for models that accept both field names and camelCase aliases"""
    model_config = ConfigDict(populate_by_name=True)


class Amount(WireModel):
    currency: str = Field(..., min_length=3, max_length=3, description="ISO 4217 currency code")
    value: float = Field(..., ge=0, description="Amount in major units of the currency")


class Destination(WireModel):
    country: str = Field(..., min_length=2, max_length=2, description="ISO 3166 alpha-2 country code")


class Payee(WireModel):
    id: str = Field(..., description="Payee identifier")
    is_new: bool = Field(default=False, alias="isNew")
    bank_fingerprint_changed: bool = Field(default=False, alias="bankFingerprintChanged")


class OrgContext(WireModel):
    """Organisation-level overrides"""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    high_value_threshold: Optional[float] = Field(default=None, ge=0)


class DecisionContext(WireModel):
    """Known context fields plus open-ended extension keys"""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    org: Optional[OrgContext] = None
    is_bulk: bool = Field(default=False, alias="isBulk")


class DecisionRequest(WireModel):
    """Payment decision request"""
    payment_id: str = Field(..., min_length=1, alias="paymentId")
    user_id: str = Field(..., min_length=1, alias="userId")
    amount: Amount
    destination: Destination
    payee: Payee
    cop: Optional[CopResult] = None
    anomaly_score: Optional[float] = Field(
        default=None, ge=0, le=1,
        validation_alias=AliasChoices("anomalyScore", "anomaly_score"),
        serialization_alias="anomalyScore",
    )
    context: DecisionContext = Field(default_factory=DecisionContext)
    answers: Dict[str, Any] = Field(default_factory=dict)
    attachments: List[Any] = Field(default_factory=list)


class ApprovalRequirement(BaseModel):
    role: ApprovalRole
    required: bool


class DecisionResponse(BaseModel):
    """Serialized decision outcome"""
    decision: Decision
    requiredForms: List[str] = Field(default_factory=list)
    requiredActions: List[str] = Field(default_factory=list)
    messages: List[str] = Field(default_factory=list)
    approvals: List[ApprovalRequirement] = Field(default_factory=list)


class ApprovalResolution(BaseModel):
    """Checker decision on a pending approval"""
    status: ApprovalStatus
    reviewer_id: str = Field(..., min_length=1)
    notes: Optional[str] = None


class ApprovalView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    payment_id: str
    user_id: str
    role: ApprovalRole
    status: ApprovalStatus
    notes: Optional[str] = None
    reviewer_id: Optional[str] = None
    approved_at: Optional[datetime] = None


class DocumentView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    payment_id: str
    type: DocumentType
    file_path: str
    original_name: str
    file_size: int


class CheckView(BaseModel):
    """Stored check record with its approvals and documents"""
    model_config = ConfigDict(from_attributes=True)

    payment_id: str
    user_id: str
    risk_triggers: List[str]
    answers: Dict[str, Any]
    cop_result: Optional[str] = None
    decision: Decision
    required_forms: List[str] = Field(default_factory=list)
    required_actions: List[str] = Field(default_factory=list)
    messages: List[str] = Field(default_factory=list)
    reviewer: Optional[Dict[str, Any]] = None
    audit: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None
    approvals: List[ApprovalView] = Field(default_factory=list)
    documents: List[DocumentView] = Field(default_factory=list)
