from sqlalchemy import Column, String, Integer, DateTime, CheckConstraint, ForeignKey, Index
from sqlalchemy.dialects.postgresql import UUID
from app.models.base import Base
from sqlalchemy.sql import func


class Ticket(Base):
    """Support ticket raised by (or on behalf of) an account.

    ``satisfaction_score`` is the 1–5 CSAT rating collected after
    resolution; it feeds the support health dimension.
    """

    __tablename__ = "tickets"
    ticket_id = Column(
        UUID(as_uuid=True), primary_key=True, server_default=func.gen_random_uuid()
    )
    org_id = Column(String(64), nullable=False)
    account_id = Column(
        UUID(as_uuid=True),
        ForeignKey("accounts.account_id", ondelete="CASCADE"),
        nullable=False,
    )
    subject = Column(String(255), nullable=False)
    status = Column(String(20), nullable=False, server_default="NEW")
    priority = Column(String(20), nullable=False, server_default="MEDIUM")
    satisfaction_score = Column(Integer)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    resolved_at = Column(DateTime(timezone=True))

    __table_args__ = (
        CheckConstraint(
            "status IN ('NEW', 'OPEN', 'PENDING', 'RESOLVED', 'CLOSED')",
            name="ck_ticket_status",
        ),
        CheckConstraint(
            "priority IN ('LOW', 'MEDIUM', 'HIGH', 'URGENT')",
            name="ck_ticket_priority",
        ),
        CheckConstraint(
            "satisfaction_score IS NULL OR satisfaction_score BETWEEN 1 AND 5",
            name="ck_ticket_csat_range",
        ),
        Index("idx_tickets_org_account_status", "org_id", "account_id", "status"),
    )
