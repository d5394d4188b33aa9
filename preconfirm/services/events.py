"""
Completion notifications for committed pre-confirmation checks.

Listeners are called after the decision transaction has committed.
Delivery is best effort: a failing listener is logged and skipped.
"""

from typing import Callable, List
import hashlib
import json
import logging
import uuid

from preconfirm.services.database import AuditLog, PreconfirmCheck

logger = logging.getLogger(__name__)

Listener = Callable[[PreconfirmCheck], None]


class CompletionNotifier:
    """Fan-out of committed check records to subscribed listeners"""

    def __init__(self):
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def publish(self, check: PreconfirmCheck) -> None:
        for listener in list(self._listeners):
            try:
                listener(check)
            except Exception as e:
                logger.error(f"Completion listener {listener!r} failed for payment {check.payment_id}: {e}")


class AuditLogListener:
    """Writes an audit_logs row for every completed check"""

    event_type = "preconfirm_completed"

    def __init__(self, session_factory):
        self.session_factory = session_factory

    def __call__(self, check: PreconfirmCheck) -> None:
        audit = check.audit or {}
        event_data = {
            "payment_id": check.payment_id,
            "decision": check.decision.value if hasattr(check.decision, "value") else check.decision,
            "risk_triggers": check.risk_triggers,
            "required_forms": check.required_forms,
            "required_actions": check.required_actions,
        }

        db = self.session_factory()
        try:
            db.add(AuditLog(
                id=str(uuid.uuid4()),
                event_type=self.event_type,
                entity_type="preconfirm_check",
                entity_id=check.payment_id,
                event_data=event_data,
                data_hash=hashlib.sha256(json.dumps(event_data, sort_keys=True).encode()).hexdigest(),
                user_id=check.user_id,
                ip_address=audit.get("ip"),
            ))
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()
