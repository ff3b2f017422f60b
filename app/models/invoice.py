from sqlalchemy import Column, String, Numeric, DateTime, CheckConstraint, ForeignKey, Index
from sqlalchemy.dialects.postgresql import UUID
from app.models.base import Base
from sqlalchemy.sql import func


class Invoice(Base):
    __tablename__ = "invoices"
    invoice_id = Column(UUID(as_uuid=True), primary_key=True, server_default=func.gen_random_uuid())
    org_id = Column(String(64), nullable=False)
    account_id = Column(UUID(as_uuid=True), ForeignKey("accounts.account_id", ondelete="CASCADE"), nullable=False)
    number = Column(String(50), nullable=False)
    status = Column(String(20), nullable=False, server_default="DRAFT")
    total = Column(Numeric(15, 2), nullable=False, server_default="0")
    due_date = Column(DateTime(timezone=True), nullable=False)
    paid_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint(
            "status IN ('DRAFT', 'SENT', 'VIEWED', 'PAID', 'OVERDUE', 'CANCELLED')",
            name="ck_invoice_status",
        ),
        Index("idx_invoices_org_account_due", "org_id", "account_id", "due_date"),
    )
