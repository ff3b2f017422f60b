from enum import Enum
from pydantic import BaseModel


class RiskLevel(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class HealthDimension(str, Enum):
    """Health sub-score dimensions, in risk-reason priority order."""

    engagement = "engagement"
    support = "support"
    relationship = "relationship"
    financial = "financial"
    adoption = "adoption"


class ActivityType(str, Enum):
    CALL = "CALL"
    EMAIL = "EMAIL"
    MEETING = "MEETING"
    NOTE = "NOTE"
    TASK = "TASK"
    HEALTH_ALERT = "HEALTH_ALERT"
    PLAYBOOK_STARTED = "PLAYBOOK_STARTED"


class TicketStatus(str, Enum):
    NEW = "NEW"
    OPEN = "OPEN"
    PENDING = "PENDING"
    RESOLVED = "RESOLVED"
    CLOSED = "CLOSED"


class TicketPriority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


class RenewalStatus(str, Enum):
    UPCOMING = "UPCOMING"
    IN_PROGRESS = "IN_PROGRESS"
    RENEWED = "RENEWED"
    CHURNED = "CHURNED"


class InvoiceStatus(str, Enum):
    DRAFT = "DRAFT"
    SENT = "SENT"
    VIEWED = "VIEWED"
    PAID = "PAID"
    OVERDUE = "OVERDUE"
    CANCELLED = "CANCELLED"


class UsageEventType(str, Enum):
    LOGIN = "LOGIN"
    FEATURE_USED = "FEATURE_USED"


class ActorType(str, Enum):
    USER = "USER"
    AI_AGENT = "AI_AGENT"
    SYSTEM = "SYSTEM"
    API = "API"


class PlaybookTrigger(str, Enum):
    MANUAL = "MANUAL"
    NEW_CUSTOMER = "NEW_CUSTOMER"
    RENEWAL_APPROACHING = "RENEWAL_APPROACHING"
    HEALTH_DROP = "HEALTH_DROP"
    TICKET_ESCALATION = "TICKET_ESCALATION"


class PlaybookRunStatus(str, Enum):
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class SuccessResponse(BaseModel):
    """Generic success response base."""

    success: bool = True
