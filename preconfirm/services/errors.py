"""Error taxonomy shared by the preconfirm services and the HTTP layer."""


class PreconfirmError(Exception):
    """Base class for all preconfirm service errors"""
    status_code = 500


class ValidationError(PreconfirmError):
    """Malformed or missing input"""
    status_code = 422


class NotFoundError(PreconfirmError):
    """Unknown form id, payment id or approval id"""
    status_code = 404


class ConflictError(PreconfirmError):
    """Write rejected because it would overwrite an existing decision"""
    status_code = 409


class ApprovalStateError(ConflictError):
    """Approval record is no longer pending"""


class TransactionError(PreconfirmError):
    """Storage failure mid-pipeline; the attempt was rolled back and may be retried"""
    status_code = 503
