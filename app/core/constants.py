from typing import FrozenSet

from app.schemas.common import (
    ActivityType,
    InvoiceStatus,
    RiskLevel,
    TicketStatus,
)


def _check_clause(column: str, values) -> str:
    return f"{column} IN ({', '.join(repr(v) for v in values)})"


RISK_LEVELS: FrozenSet[str] = frozenset(r.value for r in RiskLevel)
AT_RISK_LEVELS: FrozenSet[str] = frozenset(
    {RiskLevel.HIGH.value, RiskLevel.CRITICAL.value}
)

RISK_LEVEL_CHECK_CLAUSE: str = _check_clause(
    "risk_level", (r.value for r in RiskLevel)
)

OPEN_TICKET_STATUSES: FrozenSet[str] = frozenset(
    {TicketStatus.NEW.value, TicketStatus.OPEN.value, TicketStatus.PENDING.value}
)
RESOLVED_TICKET_STATUSES: FrozenSet[str] = frozenset(
    {TicketStatus.RESOLVED.value, TicketStatus.CLOSED.value}
)

# Activity types that count as a touchpoint with the customer
CONTACT_ACTIVITY_TYPES: FrozenSet[str] = frozenset(
    {
        ActivityType.CALL.value,
        ActivityType.EMAIL.value,
        ActivityType.MEETING.value,
        ActivityType.NOTE.value,
    }
)

# Invoices still awaiting payment; overdue once due_date has passed
UNPAID_INVOICE_STATUSES: FrozenSet[str] = frozenset(
    {InvoiceStatus.SENT.value, InvoiceStatus.VIEWED.value}
)

# Signal windows (days)
RECENT_ACTIVITY_DAYS: int = 30
ENGAGEMENT_LOOKBACK_DAYS: int = 90
RECENT_TASK_DAYS: int = 30
SUPPORT_LOOKBACK_DAYS: int = 90
PAYMENT_LOOKBACK_DAYS: int = 90
USAGE_LOOKBACK_DAYS: int = 30

# Score bucket floors
LOW_RISK_MIN_SCORE: int = 70
MEDIUM_RISK_MIN_SCORE: int = 40

NEUTRAL_SCORE: int = 50

# A sub-score below this produces a "weak dimension" risk reason
WEAK_DIMENSION_SCORE: int = 40

DEFAULT_HEALTH_DROP_THRESHOLD: int = 40

AUDIT_MODULE_ACCOUNT_HEALTH: str = "ACCOUNT_HEALTH"

AUDIT_ACTION_HEALTH_RECALCULATED: str = "HEALTH_RECALCULATED"

# Redis key for a tenant's cached dashboard summary
HEALTH_SUMMARY_CACHE_KEY: str = "health_summary:{org_id}"

AT_RISK_SEARCH_MAX_LIMIT: int = 20
