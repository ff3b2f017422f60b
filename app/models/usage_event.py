from sqlalchemy import Column, String, DateTime, CheckConstraint, ForeignKey, Index
from sqlalchemy.dialects.postgresql import UUID
from app.models.base import Base
from sqlalchemy.sql import func


class UsageEvent(Base):
    """Product usage signal (logins and feature use) fed from the product.

    Accounts with no usage events at all are treated as "no usage feed"
    and score neutral on the adoption dimension.
    """

    __tablename__ = "usage_events"
    event_id = Column(
        UUID(as_uuid=True), primary_key=True, server_default=func.gen_random_uuid()
    )
    org_id = Column(String(64), nullable=False)
    account_id = Column(
        UUID(as_uuid=True),
        ForeignKey("accounts.account_id", ondelete="CASCADE"),
        nullable=False,
    )
    event_type = Column(String(20), nullable=False)
    feature = Column(String(100))
    occurred_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        CheckConstraint(
            "event_type IN ('LOGIN', 'FEATURE_USED')", name="ck_usage_event_type"
        ),
        Index("idx_usage_events_org_account_occurred", "org_id", "account_id", "occurred_at"),
    )
