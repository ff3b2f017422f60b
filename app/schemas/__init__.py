"""Pydantic schemas package – re-exports for convenience."""

# Common enums
from app.schemas.common import (
    RiskLevel as RiskLevel,
    HealthDimension as HealthDimension,
    ActivityType as ActivityType,
    TicketStatus as TicketStatus,
    TicketPriority as TicketPriority,
    RenewalStatus as RenewalStatus,
    InvoiceStatus as InvoiceStatus,
    UsageEventType as UsageEventType,
    ActorType as ActorType,
    PlaybookTrigger as PlaybookTrigger,
    PlaybookRunStatus as PlaybookRunStatus,
    SuccessResponse as SuccessResponse,
)

# Account health schemas
from app.schemas.account_health import (
    RiskReasonOut as RiskReasonOut,
    AccountHealthOut as AccountHealthOut,
    AccountHealthListResponse as AccountHealthListResponse,
    AccountHealthDetailResponse as AccountHealthDetailResponse,
    HealthSummaryResponse as HealthSummaryResponse,
    AtRiskAccountOut as AtRiskAccountOut,
    AtRiskSearchResponse as AtRiskSearchResponse,
    RecalculateRequest as RecalculateRequest,
    RecalculationFailureOut as RecalculationFailureOut,
    RecalculateSingleResponse as RecalculateSingleResponse,
    RecalculateAllResponse as RecalculateAllResponse,
)
