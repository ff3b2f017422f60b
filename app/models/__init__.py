from app.models.base import Base
from app.models.account import Account
from app.models.account_health import AccountHealth
from app.models.contact import Contact
from app.models.activity import Activity
from app.models.note import Note
from app.models.ticket import Ticket
from app.models.task import Task
from app.models.renewal import Renewal
from app.models.invoice import Invoice
from app.models.usage_event import UsageEvent
from app.models.audit_log import AuditLog
from app.models.playbook import Playbook, PlaybookRun

# Import event listeners to register them
from app.models import listeners  # noqa: F401

__all__ = [
    "Base",
    "Account",
    "AccountHealth",
    "Contact",
    "Activity",
    "Note",
    "Ticket",
    "Task",
    "Renewal",
    "Invoice",
    "UsageEvent",
    "AuditLog",
    "Playbook",
    "PlaybookRun",
]
