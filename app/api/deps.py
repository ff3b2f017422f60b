"""API-layer dependency functions.

Re-exports all dependency factories from ``app.dependencies`` so that
endpoint modules only need to import from ``app.api.deps``.
"""

from app.core.tenant import OrgContext, get_org_context
from app.dependencies import (
    # Repository factories
    get_account_repo,
    get_health_repo,
    get_activity_repo,
    get_task_repo,
    get_audit_repo,
    get_playbook_repo,
    # Service factories
    get_metric_aggregator,
    get_health_scorer,
    get_playbook_trigger_service,
    get_health_recalculation_service,
    get_health_dashboard_service,
    # Redis / cache
    get_redis_client,
    get_cache_service,
)

__all__ = [
    "OrgContext",
    "get_org_context",
    "get_account_repo",
    "get_health_repo",
    "get_activity_repo",
    "get_task_repo",
    "get_audit_repo",
    "get_playbook_repo",
    "get_metric_aggregator",
    "get_health_scorer",
    "get_playbook_trigger_service",
    "get_health_recalculation_service",
    "get_health_dashboard_service",
    "get_redis_client",
    "get_cache_service",
]
