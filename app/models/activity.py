from sqlalchemy import Column, String, Text, DateTime, CheckConstraint, ForeignKey, Index
from sqlalchemy.dialects.postgresql import UUID
from app.models.base import Base
from sqlalchemy.sql import func

from app.schemas.common import ActivityType, ActorType


class Activity(Base):
    """Timeline entry on an account (calls, meetings, system alerts)."""

    __tablename__ = "activities"
    activity_id = Column(UUID(as_uuid=True), primary_key=True, server_default=func.gen_random_uuid())
    org_id = Column(String(64), nullable=False)
    account_id = Column(UUID(as_uuid=True), ForeignKey("accounts.account_id", ondelete="CASCADE"), nullable=False)
    type = Column(String(50), nullable=False)
    subject = Column(String(255))
    description = Column(Text)
    workspace = Column(String(20), nullable=False, server_default="cs")
    performed_by_id = Column(String(64))
    performed_by_type = Column(String(20), nullable=False, server_default="USER")
    performed_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        CheckConstraint(
            f"type IN ({', '.join(repr(t.value) for t in ActivityType)})",
            name="ck_activity_type",
        ),
        CheckConstraint(
            f"performed_by_type IN ({', '.join(repr(a.value) for a in ActorType)})",
            name="ck_activity_actor_type",
        ),
        Index("idx_activities_org_account_performed", "org_id", "account_id", "performed_at"),
    )
