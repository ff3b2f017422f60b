"""Account-health Pydantic schemas (read models, recalculation I/O, dashboard)."""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing_extensions import Self

from app.schemas.common import HealthDimension, RiskLevel, SuccessResponse


# ---------------------------------------------------------------------------
# Read models
# ---------------------------------------------------------------------------


class RiskReasonOut(BaseModel):
    code: str
    dimension: Optional[HealthDimension] = None
    message: str


class AccountHealthOut(BaseModel):
    """Serialized ``AccountHealth`` row."""

    model_config = ConfigDict(from_attributes=True)

    health_id: Optional[UUID] = None
    account_id: UUID
    score: int = Field(..., ge=0, le=100)
    previous_score: Optional[int] = None
    risk_level: RiskLevel
    is_at_risk: bool
    risk_reasons: List[RiskReasonOut] = []
    degraded_dimensions: List[HealthDimension] = []
    engagement_score: int
    support_score: int
    relationship_score: int
    financial_score: int
    adoption_score: int
    open_ticket_count: int = 0
    last_login_at: Optional[datetime] = None
    last_contact_at: Optional[datetime] = None
    last_meeting_at: Optional[datetime] = None
    calculated_at: Optional[datetime] = None


class AccountHealthListResponse(BaseModel):
    health_scores: List[AccountHealthOut]
    total: int
    limit: int
    offset: int


class AccountHealthDetailResponse(BaseModel):
    account_id: UUID
    account_name: str
    health: Optional[AccountHealthOut] = None


class HealthSummaryResponse(BaseModel):
    total: int
    critical: int
    high: int
    medium: int
    low: int
    average_score: int
    accounts_without_health: int


class AtRiskAccountOut(BaseModel):
    account_id: UUID
    account_name: str
    score: int
    risk_level: RiskLevel
    risk_reasons: List[RiskReasonOut] = []


class AtRiskSearchResponse(BaseModel):
    count: int
    accounts: List[AtRiskAccountOut]


# ---------------------------------------------------------------------------
# Recalculation
# ---------------------------------------------------------------------------


class RecalculateRequest(BaseModel):
    """Body of ``POST /cs/health/recalculate``.

    Exactly one of ``account_id`` or ``all=true`` must be given.
    """

    account_id: Optional[UUID] = None
    all: bool = False

    @model_validator(mode="after")
    def validate_target(self) -> Self:
        if self.account_id is not None and self.all:
            raise ValueError("Provide either account_id or all=true, not both")
        return self


class RecalculationFailureOut(BaseModel):
    account_id: UUID
    error: str


class RecalculateSingleResponse(SuccessResponse):
    health: AccountHealthOut


class RecalculateAllResponse(SuccessResponse):
    message: str
    updated_count: int
    newly_scored_count: int
    failed_count: int
    failures: List[RecalculationFailureOut] = []
