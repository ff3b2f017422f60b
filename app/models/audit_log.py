from sqlalchemy import Column, String, DateTime, Index
from sqlalchemy.dialects.postgresql import UUID, JSONB
from app.models.base import Base
from sqlalchemy.sql import func


class AuditLog(Base):
    """Append-only record of who changed what, with before/after state."""

    __tablename__ = "audit_logs"
    audit_id = Column(UUID(as_uuid=True), primary_key=True, server_default=func.gen_random_uuid())
    org_id = Column(String(64), nullable=False)
    action = Column(String(30), nullable=False)
    module = Column(String(50), nullable=False)
    record_id = Column(String(64))
    actor_type = Column(String(20), nullable=False)
    actor_id = Column(String(64))
    previous_state = Column(JSONB)
    new_state = Column(JSONB)
    # "metadata" is reserved on declarative classes
    extra = Column("metadata", JSONB)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (Index("idx_audit_logs_org_module_created", "org_id", "module", "created_at"),)
