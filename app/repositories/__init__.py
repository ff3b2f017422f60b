"""Repository layer – all database access goes through here.

Repositories encapsulate SQLAlchemy queries so that the service layer
only contains business logic.  Every query is scoped by ``org_id``.
"""

from app.repositories.account_repository import AccountRepository
from app.repositories.health_repository import AccountHealthRepository
from app.repositories.activity_repository import ActivityRepository
from app.repositories.note_repository import NoteRepository
from app.repositories.ticket_repository import TicketRepository
from app.repositories.contact_repository import ContactRepository
from app.repositories.task_repository import TaskRepository
from app.repositories.financial_repository import FinancialRepository
from app.repositories.usage_repository import UsageRepository
from app.repositories.audit_repository import AuditLogRepository
from app.repositories.playbook_repository import PlaybookRepository

__all__ = [
    "AccountRepository",
    "AccountHealthRepository",
    "ActivityRepository",
    "NoteRepository",
    "TicketRepository",
    "ContactRepository",
    "TaskRepository",
    "FinancialRepository",
    "UsageRepository",
    "AuditLogRepository",
    "PlaybookRepository",
]
