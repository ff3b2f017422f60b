from sqlalchemy import Column, String, Integer, Numeric, DateTime, CheckConstraint, ForeignKey, Index
from sqlalchemy.dialects.postgresql import UUID
from app.models.base import Base
from sqlalchemy.sql import func


class Renewal(Base):
    __tablename__ = "renewals"
    renewal_id = Column(UUID(as_uuid=True), primary_key=True, server_default=func.gen_random_uuid())
    org_id = Column(String(64), nullable=False)
    account_id = Column(UUID(as_uuid=True), ForeignKey("accounts.account_id", ondelete="CASCADE"), nullable=False)
    status = Column(String(20), nullable=False, server_default="UPCOMING")
    probability = Column(Integer, nullable=False, server_default="50")
    contract_value = Column(Numeric(15, 2))
    end_date = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint("status IN ('UPCOMING', 'IN_PROGRESS', 'RENEWED', 'CHURNED')", name="ck_renewal_status"),
        CheckConstraint("probability BETWEEN 0 AND 100", name="ck_renewal_probability"),
        Index("idx_renewals_org_account", "org_id", "account_id"),
    )
