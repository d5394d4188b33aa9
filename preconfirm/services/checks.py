"""
Pre-confirmation Check Service

Runs the decision pipeline as one transaction and records supporting
documents. Trigger evaluation, policy resolution, the check record and
any pending approvals are committed together or not at all; the completion
notification goes out only after that commit.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Tuple
import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from preconfirm.services.approvals import build_pending_approval
from preconfirm.services.database import PreconfirmCheck, PaymentDocument
from preconfirm.services.engine import DecisionEngine, DecisionOutcome
from preconfirm.services.enums import DocumentType
from preconfirm.services.errors import (
    ConflictError, NotFoundError, TransactionError, ValidationError
)
from preconfirm.services.events import CompletionNotifier
from preconfirm.services.schemas import DecisionRequest
from preconfirm.services.storage import BlobStore
from preconfirm.services.triggers import TriggerEvaluator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuditContext:
    """Caller metadata recorded with each check"""
    ip: Optional[str] = None
    user_agent: Optional[str] = None


class PreconfirmCheckService:
    """Decision pipeline and document intake"""

    def __init__(self, evaluator: TriggerEvaluator, engine: DecisionEngine,
                 notifier: Optional[CompletionNotifier] = None,
                 blob_store: Optional[BlobStore] = None):
        self.evaluator = evaluator
        self.engine = engine
        self.notifier = notifier or CompletionNotifier()
        self.blob_store = blob_store

    def process_check(self, db: Session, request: DecisionRequest,
                      audit: Optional[AuditContext] = None) -> Tuple[PreconfirmCheck, DecisionOutcome]:
        """Evaluate, decide and persist one payment attempt"""

        audit = audit or AuditContext()

        try:
            existing = db.query(PreconfirmCheck.id).filter(
                PreconfirmCheck.payment_id == request.payment_id
            ).first()
            if existing:
                raise ConflictError(f"Payment {request.payment_id} already has a decision")

            triggers = self.evaluator.evaluate(request)
            outcome = self.engine.resolve(request, triggers)

            check = PreconfirmCheck(
                payment_id=request.payment_id,
                user_id=request.user_id,
                risk_triggers=triggers.fired(),
                answers=dict(request.answers),
                cop_result=request.cop.value if request.cop else None,
                decision=outcome.decision,
                required_forms=list(outcome.required_forms),
                required_actions=list(outcome.required_actions),
                messages=list(outcome.messages),
                audit={
                    "ip": audit.ip,
                    "user_agent": audit.user_agent,
                    "timestamp": datetime.now(timezone.utc).isoformat(),
                },
            )
            db.add(check)

            for requirement in outcome.approvals:
                db.add(build_pending_approval(request.payment_id, requirement["role"], request.user_id))

            db.commit()

        except IntegrityError as e:
            # Lost a race with a concurrent decision for the same payment
            db.rollback()
            logger.warning(f"Duplicate decision rejected for payment {request.payment_id}")
            raise ConflictError(f"Payment {request.payment_id} already has a decision") from e
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Decision transaction failed for payment {request.payment_id}: {e}")
            raise TransactionError(f"Decision for payment {request.payment_id} was not recorded") from e
        except Exception:
            db.rollback()
            raise

        logger.info(
            f"Payment {request.payment_id} decided {outcome.decision.value} "
            f"(triggers: {check.risk_triggers})"
        )

        self.notifier.publish(check)
        return check, outcome

    def get_check(self, db: Session, payment_id: str) -> PreconfirmCheck:
        """Stored check with its approvals and documents"""

        check = db.query(PreconfirmCheck).filter(PreconfirmCheck.payment_id == payment_id).first()
        if check is None:
            raise NotFoundError(f"No preconfirm check for payment {payment_id}")
        return check

    def store_document(self, db: Session, payment_id: str, doc_type, file_bytes: bytes,
                       original_name: str) -> PaymentDocument:
        """Save document bytes via the blob store and record its metadata"""

        try:
            doc_type = DocumentType(doc_type)
        except ValueError:
            raise ValidationError(
                f"Document type must be one of {[t.value for t in DocumentType]}, got {doc_type!r}"
            )

        if self.blob_store is None:
            raise RuntimeError("No blob store configured for document intake")

        # Raises NotFoundError for unknown payments
        self.get_check(db, payment_id)

        file_path = self.blob_store.save(file_bytes, original_name)
        document = PaymentDocument(
            payment_id=payment_id,
            type=doc_type,
            file_path=file_path,
            original_name=original_name,
            file_size=len(file_bytes),
        )

        try:
            db.add(document)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            self.blob_store.delete(file_path)
            logger.error(f"Failed to record document for payment {payment_id}: {e}")
            raise TransactionError(f"Document for payment {payment_id} was not recorded") from e

        logger.info(f"Stored {doc_type.value} document {document.id} for payment {payment_id}")
        return document
