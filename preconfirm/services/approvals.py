"""
Approval Workflow

Lifecycle of maker/checker approval records. A record is created pending
and moves to approved or rejected exactly once.
"""

from datetime import datetime, timezone
from typing import List, Optional
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from preconfirm.services.database import PaymentApproval, PreconfirmCheck
from preconfirm.services.enums import ApprovalRole, ApprovalStatus
from preconfirm.services.errors import (
    ApprovalStateError, NotFoundError, TransactionError, ValidationError
)

logger = logging.getLogger(__name__)


def _parse_role(role) -> ApprovalRole:
    try:
        return ApprovalRole(role)
    except ValueError:
        raise ValidationError(f"Unknown approval role: {role}")


def build_pending_approval(payment_id: str, role, user_id: str) -> PaymentApproval:
    """New pending approval row; the caller owns the transaction"""
    return PaymentApproval(
        payment_id=payment_id,
        user_id=user_id,
        role=_parse_role(role),
        status=ApprovalStatus.PENDING,
    )


class ApprovalWorkflow:
    """Create, resolve and list approval records"""

    def create_approval_requirement(self, db: Session, payment_id: str, role,
                                    user_id: Optional[str] = None) -> PaymentApproval:
        """Insert a pending approval for an existing payment check"""

        check = db.query(PreconfirmCheck).filter(PreconfirmCheck.payment_id == payment_id).first()
        if check is None:
            raise NotFoundError(f"No preconfirm check for payment {payment_id}")

        approval = build_pending_approval(payment_id, role, user_id or check.user_id)

        try:
            db.add(approval)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to create approval for payment {payment_id}: {e}")
            raise TransactionError(f"Could not create approval for payment {payment_id}") from e

        logger.info(f"Created pending {approval.role.value} approval {approval.id} for payment {payment_id}")
        return approval

    def resolve_approval(self, db: Session, approval_id: int, outcome, reviewer_id: str,
                         notes: Optional[str] = None) -> PaymentApproval:
        """Move a pending approval to approved or rejected, at most once"""

        try:
            status = ApprovalStatus(outcome)
        except ValueError:
            raise ValidationError(f"Approval outcome must be 'approved' or 'rejected', got {outcome!r}")
        if status == ApprovalStatus.PENDING:
            raise ValidationError("Approval outcome must be 'approved' or 'rejected'")

        approval = db.get(PaymentApproval, approval_id)
        if approval is None:
            raise NotFoundError(f"Approval {approval_id} not found")

        if reviewer_id == approval.user_id:
            raise ValidationError("Checker must be a different person from the maker")

        resolved_at = datetime.now(timezone.utc)

        try:
            # Conditional update: only one resolver can see the row as pending
            updated = db.query(PaymentApproval).filter(
                PaymentApproval.id == approval_id,
                PaymentApproval.status == ApprovalStatus.PENDING
            ).update({
                PaymentApproval.status: status,
                PaymentApproval.reviewer_id: reviewer_id,
                PaymentApproval.notes: notes,
                PaymentApproval.approved_at: resolved_at if status == ApprovalStatus.APPROVED else None,
            }, synchronize_session=False)

            if updated == 0:
                raise ApprovalStateError(f"Approval {approval_id} is no longer pending")

            check = db.query(PreconfirmCheck).filter(
                PreconfirmCheck.payment_id == approval.payment_id
            ).first()
            if check is not None:
                check.reviewer = {
                    "approval_id": approval_id,
                    "user_id": reviewer_id,
                    "role": approval.role.value,
                    "status": status.value,
                    "notes": notes,
                    "resolved_at": resolved_at.isoformat(),
                }

            db.commit()

        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to resolve approval {approval_id}: {e}")
            raise TransactionError(f"Could not resolve approval {approval_id}") from e
        except Exception:
            db.rollback()
            raise

        db.refresh(approval)
        logger.info(f"Approval {approval_id} for payment {approval.payment_id} {status.value} by {reviewer_id}")
        return approval

    def list_approvals(self, db: Session, payment_id: str) -> List[PaymentApproval]:
        return db.query(PaymentApproval).filter(
            PaymentApproval.payment_id == payment_id
        ).order_by(PaymentApproval.id).all()
