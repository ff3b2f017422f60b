from sqlalchemy import Column, String, Integer, Boolean, DateTime, CheckConstraint, ForeignKey, Index
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.orm import relationship
from app.models.base import Base
from sqlalchemy.sql import func


class Playbook(Base):
    """Reusable customer-success workflow started manually or by a trigger.

    ``steps`` is a JSONB list of ``{order, day_offset, title, description,
    task_type, assignee_type}`` objects; ``trigger_config`` carries trigger
    parameters such as ``health_score_threshold``.
    """

    __tablename__ = "playbooks"
    playbook_id = Column(
        UUID(as_uuid=True), primary_key=True, server_default=func.gen_random_uuid()
    )
    org_id = Column(String(64), nullable=False)
    name = Column(String(200), nullable=False)
    trigger = Column(String(30), nullable=False, server_default="MANUAL")
    trigger_config = Column(JSONB)
    steps = Column(JSONB, nullable=False, server_default="[]")
    is_active = Column(Boolean, nullable=False, server_default="true")
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    runs = relationship("PlaybookRun", back_populates="playbook", cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint(
            "trigger IN ('MANUAL', 'NEW_CUSTOMER', 'RENEWAL_APPROACHING', 'HEALTH_DROP', 'TICKET_ESCALATION')",
            name="ck_playbook_trigger",
        ),
        Index("idx_playbooks_org_trigger_active", "org_id", "trigger", "is_active"),
    )


class PlaybookRun(Base):
    __tablename__ = "playbook_runs"
    run_id = Column(UUID(as_uuid=True), primary_key=True, server_default=func.gen_random_uuid())
    org_id = Column(String(64), nullable=False)
    playbook_id = Column(UUID(as_uuid=True), ForeignKey("playbooks.playbook_id", ondelete="CASCADE"), nullable=False)
    account_id = Column(UUID(as_uuid=True), ForeignKey("accounts.account_id", ondelete="CASCADE"), nullable=False)
    status = Column(String(20), nullable=False, server_default="IN_PROGRESS")
    current_step = Column(Integer, nullable=False, server_default="1")
    total_steps = Column(Integer, nullable=False, server_default="0")
    started_by_id = Column(String(64))
    extra = Column("metadata", JSONB)
    started_at = Column(DateTime(timezone=True), server_default=func.now())

    playbook = relationship("Playbook", back_populates="runs")

    __table_args__ = (
        CheckConstraint("status IN ('IN_PROGRESS', 'COMPLETED', 'CANCELLED')", name="ck_playbook_run_status"),
        Index("idx_playbook_runs_playbook_account_status", "playbook_id", "account_id", "status"),
    )
