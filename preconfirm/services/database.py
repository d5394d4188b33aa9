"""
Database models for Preconfirm

SQLAlchemy ORM models for pre-confirmation checks, payment approvals,
supporting documents and the audit trail.
"""

from sqlalchemy import (
    create_engine, Column, String, Integer, DateTime,
    Text, JSON, Enum, Index
)
from sqlalchemy.orm import declarative_base, sessionmaker, relationship
from sqlalchemy.pool import StaticPool
from sqlalchemy.sql import func
import logging
from typing import Optional

from preconfirm.services.config import get_database_url, get_settings
from preconfirm.services.enums import Decision, ApprovalRole, ApprovalStatus, DocumentType

logger = logging.getLogger(__name__)

Base = declarative_base()


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class PreconfirmCheck(Base):
    """One immutable decision record per payment attempt"""
    __tablename__ = 'preconfirm_checks'

    id = Column(Integer, primary_key=True, autoincrement=True)
    payment_id = Column(String(255), nullable=False, unique=True)
    user_id = Column(String(255), nullable=False, index=True)

    # Decision inputs
    risk_triggers = Column(JSON, nullable=False)  # Names of fired triggers
    answers = Column(JSON, nullable=False)
    cop_result = Column(String(20))

    # Decision outcome
    decision = Column(
        Enum(Decision, values_callable=_enum_values, name='preconfirm_decision'),
        nullable=False
    )
    required_forms = Column(JSON)
    required_actions = Column(JSON)
    messages = Column(JSON)

    # Filled when an approval is resolved
    reviewer = Column(JSON)

    # ip, user_agent, timestamp captured at write time
    audit = Column(JSON)

    # Metadata
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Back references by payment_id only, no cascade
    approvals = relationship(
        "PaymentApproval",
        primaryjoin="PreconfirmCheck.payment_id == foreign(PaymentApproval.payment_id)",
        viewonly=True,
        order_by="PaymentApproval.id",
    )
    documents = relationship(
        "PaymentDocument",
        primaryjoin="PreconfirmCheck.payment_id == foreign(PaymentDocument.payment_id)",
        viewonly=True,
        order_by="PaymentDocument.id",
    )

    __table_args__ = (
        Index('idx_check_decision', 'decision'),
    )


class PaymentApproval(Base):
    """Maker/checker approval records tied to a payment"""
    __tablename__ = 'payment_approvals'

    id = Column(Integer, primary_key=True, autoincrement=True)
    payment_id = Column(String(255), nullable=False, index=True)
    user_id = Column(String(255), nullable=False)  # Maker who raised the requirement
    role = Column(
        Enum(ApprovalRole, values_callable=_enum_values, name='approval_role'),
        nullable=False
    )
    status = Column(
        Enum(ApprovalStatus, values_callable=_enum_values, name='approval_status'),
        nullable=False,
        default=ApprovalStatus.PENDING
    )
    notes = Column(Text)
    reviewer_id = Column(String(255))
    approved_at = Column(DateTime(timezone=True))

    # Metadata
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index('idx_approval_status', 'status'),
    )


class PaymentDocument(Base):
    """Supporting documents uploaded for a payment"""
    __tablename__ = 'payment_documents'

    id = Column(Integer, primary_key=True, autoincrement=True)
    payment_id = Column(String(255), nullable=False, index=True)
    type = Column(
        Enum(DocumentType, values_callable=_enum_values, name='document_type'),
        nullable=False
    )
    file_path = Column(String(1024), nullable=False)
    original_name = Column(String(255), nullable=False)
    file_size = Column(Integer, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())


class AuditLog(Base):
    """Audit trail of completed pre-confirmation checks"""
    __tablename__ = 'audit_logs'

    id = Column(String(64), primary_key=True)
    event_type = Column(String(50), nullable=False)  # preconfirm_completed, etc.
    entity_type = Column(String(50))
    entity_id = Column(String(255))

    event_data = Column(JSON)
    data_hash = Column(String(64))
    user_id = Column(String(255))
    ip_address = Column(String(45))

    timestamp = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index('idx_audit_timestamp', 'timestamp'),
        Index('idx_audit_entity', 'entity_type', 'entity_id'),
        Index('idx_audit_event', 'event_type'),
    )


def create_engine_instance(database_url: Optional[str] = None):
    """Create SQLAlchemy engine with settings suited to the backend"""
    url = database_url or get_database_url()
    echo = get_settings().sql_echo

    if url.startswith('sqlite'):
        options = {'connect_args': {'check_same_thread': False}}
        if url in ('sqlite://', 'sqlite:///:memory:'):
            # Share one in-memory database across sessions
            options['poolclass'] = StaticPool
        return create_engine(url, echo=echo, **options)

    return create_engine(
        url,
        pool_size=20,
        max_overflow=30,
        pool_pre_ping=True,
        echo=echo
    )


def get_session_maker(engine=None):
    """Get session maker for database operations"""
    return sessionmaker(bind=engine or create_engine_instance(), expire_on_commit=False)


def init_database(engine=None):
    """Initialize database tables"""
    engine = engine or create_engine_instance()
    Base.metadata.create_all(engine)
    logger.info("Database initialized successfully")
    return engine


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    init_database()
