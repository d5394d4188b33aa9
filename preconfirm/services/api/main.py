"""
Main API Service for Preconfirm

FastAPI service exposing the pre-confirmation decision pipeline, the form
catalog, document upload and the maker/checker approval workflow.
"""

from fastapi import FastAPI, APIRouter, HTTPException, Depends, Request, UploadFile, File, Form
from fastapi.responses import JSONResponse
from typing import List, Dict, Any
from datetime import datetime, timezone
import logging
import os

from sqlalchemy.orm import Session

from preconfirm import __version__
from preconfirm.services.approvals import ApprovalWorkflow
from preconfirm.services.checks import AuditContext, PreconfirmCheckService
from preconfirm.services.config import get_settings
from preconfirm.services.database import create_engine_instance, get_session_maker, init_database
from preconfirm.services.engine import DecisionEngine
from preconfirm.services.errors import PreconfirmError
from preconfirm.services.events import AuditLogListener, CompletionNotifier
from preconfirm.services.forms import FormCatalog
from preconfirm.services.schemas import (
    ApprovalResolution, ApprovalView, CheckView, DecisionRequest, DecisionResponse, DocumentView
)
from preconfirm.services.storage import get_blob_store
from preconfirm.services.triggers import TriggerEvaluator

settings = get_settings()

# Configure logging
logging.basicConfig(level=getattr(logging, settings.log_level, logging.INFO))
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Preconfirm Risk API",
    description="Pre-confirmation fraud checks for outbound payments",
    version=__version__
)

router = APIRouter(prefix="/risk/preconfirm")

ALLOWED_EXTENSIONS = {'pdf', 'jpg', 'jpeg', 'png'}

# Database dependency
engine = create_engine_instance(settings.database_url)
SessionLocal = get_session_maker(engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


notifier = CompletionNotifier()
notifier.subscribe(AuditLogListener(SessionLocal))


def get_notifier() -> CompletionNotifier:
    return notifier


def get_check_service(notifier: CompletionNotifier = Depends(get_notifier)) -> PreconfirmCheckService:
    """Fresh service graph per request; nothing in it is shared or mutable"""
    return PreconfirmCheckService(
        evaluator=TriggerEvaluator(settings),
        engine=DecisionEngine(),
        notifier=notifier,
        blob_store=get_blob_store(settings.upload_folder),
    )


def get_approval_workflow() -> ApprovalWorkflow:
    return ApprovalWorkflow()


def get_form_catalog() -> FormCatalog:
    return FormCatalog()


def allowed_file(filename: str) -> bool:
    return '.' in filename and \
           filename.rsplit('.', 1)[1].lower() in ALLOWED_EXTENSIONS


@app.exception_handler(PreconfirmError)
async def preconfirm_error_handler(request: Request, exc: PreconfirmError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": str(exc), "error": type(exc).__name__}
    )


@router.post("/decision", response_model=DecisionResponse)
def decide_payment(
    payload: DecisionRequest,
    request: Request,
    db: Session = Depends(get_db),
    service: PreconfirmCheckService = Depends(get_check_service)
):
    """Run the pre-confirmation decision for a payment"""

    audit = AuditContext(
        ip=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )
    _, outcome = service.process_check(db, payload, audit)
    return outcome.to_response()


@router.get("/forms/{form_id}")
def get_form(form_id: str, catalog: FormCatalog = Depends(get_form_catalog)) -> Dict[str, Any]:
    """Static form definition"""
    return catalog.get_form(form_id)


@router.post("/documents/{payment_id}", response_model=DocumentView)
def upload_document(
    payment_id: str,
    file: UploadFile = File(...),
    doc_type: str = Form(..., alias="type"),
    db: Session = Depends(get_db),
    service: PreconfirmCheckService = Depends(get_check_service)
):
    """Upload a supporting document for a payment"""

    if not file.filename or not allowed_file(file.filename):
        raise HTTPException(
            status_code=422,
            detail=f"Supported formats: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
        )

    content = file.file.read()
    if len(content) > settings.max_upload_bytes:
        raise HTTPException(
            status_code=422,
            detail=f"File exceeds maximum size of {settings.max_upload_bytes} bytes"
        )

    document = service.store_document(db, payment_id, doc_type, content, os.path.basename(file.filename))
    return DocumentView.model_validate(document)


@router.get("/checks/{payment_id}", response_model=CheckView)
def get_check(
    payment_id: str,
    db: Session = Depends(get_db),
    service: PreconfirmCheckService = Depends(get_check_service)
):
    """Stored decision with its approvals and documents"""
    return CheckView.model_validate(service.get_check(db, payment_id))


@router.get("/approvals/{payment_id}", response_model=List[ApprovalView])
def list_approvals(
    payment_id: str,
    db: Session = Depends(get_db),
    workflow: ApprovalWorkflow = Depends(get_approval_workflow)
):
    return [ApprovalView.model_validate(a) for a in workflow.list_approvals(db, payment_id)]


@router.post("/approvals/{approval_id}/resolve", response_model=ApprovalView)
def resolve_approval(
    approval_id: int,
    resolution: ApprovalResolution,
    db: Session = Depends(get_db),
    workflow: ApprovalWorkflow = Depends(get_approval_workflow)
):
    """Approve or reject a pending approval"""

    approval = workflow.resolve_approval(
        db,
        approval_id,
        resolution.status,
        reviewer_id=resolution.reviewer_id,
        notes=resolution.notes,
    )
    return ApprovalView.model_validate(approval)


app.include_router(router)


@app.get("/health")
def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "service": "preconfirm", "timestamp": datetime.now(timezone.utc).isoformat()}


@app.on_event("startup")
def startup_event():
    """Initialize application on startup"""
    logger.info("Starting Preconfirm Risk API service")
    init_database(engine)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
