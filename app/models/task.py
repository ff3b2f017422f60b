from sqlalchemy import Column, String, Text, DateTime, CheckConstraint, ForeignKey, Index
from sqlalchemy.dialects.postgresql import UUID
from app.models.base import Base
from sqlalchemy.sql import func

class Task(Base):
    __tablename__ = "tasks"
    task_id = Column(UUID(as_uuid=True), primary_key=True, server_default=func.gen_random_uuid())
    org_id = Column(String(64), nullable=False)
    account_id = Column(UUID(as_uuid=True), ForeignKey("accounts.account_id", ondelete="CASCADE"), nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text)
    due_date = Column(DateTime(timezone=True))
    priority = Column(String(20), nullable=False, server_default="MEDIUM")
    status = Column(String(20), nullable=False, server_default="PENDING")
    task_type = Column(String(50))
    workspace = Column(String(20), nullable=False, server_default="cs")
    assigned_to_id = Column(String(64))
    created_by_id = Column(String(64))
    created_by_type = Column(String(20), nullable=False, server_default="USER")
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint("priority IN ('LOW', 'MEDIUM', 'HIGH', 'URGENT')", name="ck_task_priority"),
        CheckConstraint("status IN ('PENDING', 'IN_PROGRESS', 'COMPLETED', 'CANCELLED')", name="ck_task_status"),
        Index("idx_tasks_org_account_created", "org_id", "account_id", "created_at"),
    )
