from sqlalchemy import (
    Column,
    String,
    Integer,
    Boolean,
    DateTime,
    CheckConstraint,
    ForeignKey,
    Index,
)
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.orm import relationship
from app.models.base import Base
from sqlalchemy.sql import func
from sqlalchemy import text

from app.core.constants import RISK_LEVEL_CHECK_CLAUSE


class AccountHealth(Base):
    """Latest health snapshot for one account.

    Recomputed wholesale on every recalculation; the prior composite score
    is kept in ``previous_score`` for single-step trend display.  There is
    no history table.  ``is_at_risk`` mirrors ``risk_level`` (HIGH or
    CRITICAL) and is stored for cheap filtering.
    """

    __tablename__ = "account_health"
    health_id = Column(
        UUID(as_uuid=True), primary_key=True, server_default=func.gen_random_uuid()
    )
    org_id = Column(String(64), nullable=False)
    account_id = Column(
        UUID(as_uuid=True),
        ForeignKey("accounts.account_id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    score = Column(Integer, nullable=False, server_default=text("50"))
    previous_score = Column(Integer)
    risk_level = Column(String(20), nullable=False, server_default="MEDIUM")
    is_at_risk = Column(Boolean, nullable=False, server_default=text("false"))
    risk_reasons = Column(JSONB, nullable=False, server_default=text("'[]'::jsonb"))
    degraded_dimensions = Column(
        JSONB, nullable=False, server_default=text("'[]'::jsonb")
    )

    engagement_score = Column(Integer, nullable=False, server_default=text("50"))
    support_score = Column(Integer, nullable=False, server_default=text("50"))
    relationship_score = Column(Integer, nullable=False, server_default=text("50"))
    financial_score = Column(Integer, nullable=False, server_default=text("50"))
    adoption_score = Column(Integer, nullable=False, server_default=text("50"))

    last_login_at = Column(DateTime(timezone=True))
    last_contact_at = Column(DateTime(timezone=True))
    last_meeting_at = Column(DateTime(timezone=True))
    open_ticket_count = Column(Integer, nullable=False, server_default=text("0"))

    calculated_at = Column(DateTime(timezone=True), server_default=func.now())
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    account = relationship("Account", back_populates="health")

    __table_args__ = (
        CheckConstraint("score BETWEEN 0 AND 100", name="ck_health_score_range"),
        CheckConstraint(
            "previous_score IS NULL OR previous_score BETWEEN 0 AND 100",
            name="ck_health_previous_score_range",
        ),
        CheckConstraint(
            "engagement_score BETWEEN 0 AND 100 AND support_score BETWEEN 0 AND 100 "
            "AND relationship_score BETWEEN 0 AND 100 "
            "AND financial_score BETWEEN 0 AND 100 AND adoption_score BETWEEN 0 AND 100",
            name="ck_health_component_range",
        ),
        CheckConstraint(RISK_LEVEL_CHECK_CLAUSE, name="ck_health_risk_level"),
        CheckConstraint(
            "is_at_risk = (risk_level IN ('HIGH', 'CRITICAL'))",
            name="ck_health_at_risk_matches_level",
        ),
        CheckConstraint("open_ticket_count >= 0", name="ck_health_open_tickets_nonneg"),
        Index("idx_account_health_org_risk", "org_id", "risk_level"),
        Index("idx_account_health_org_score", "org_id", "score"),
        Index("idx_account_health_org_at_risk", "org_id", "is_at_risk"),
    )
