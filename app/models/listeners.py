from datetime import datetime, timezone
from sqlalchemy import event
from sqlalchemy.orm import Session

from app.core.constants import AT_RISK_LEVELS
from app.models.account import Account
from app.models.account_health import AccountHealth
from app.models.task import Task


# Auto updated_at
@event.listens_for(Account, "before_update")
@event.listens_for(AccountHealth, "before_update")
@event.listens_for(Task, "before_update")
def update_timestamp(mapper, connection, target):
    target.updated_at = datetime.now(timezone.utc)


# Keep the stored at-risk flag consistent with the risk level
@event.listens_for(Session, "before_flush")
def sync_at_risk_flag(session: Session, flush_context, instances):
    for obj in list(session.new) + list(session.dirty):
        if isinstance(obj, AccountHealth) and obj.risk_level is not None:
            obj.is_at_risk = obj.risk_level in AT_RISK_LEVELS
