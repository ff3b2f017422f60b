from dataclasses import dataclass
from typing import Optional

from fastapi import Header


@dataclass(frozen=True)
class OrgContext:
    """Caller identity resolved from request headers.

    ``org_id`` scopes every query; ``user_id`` is recorded as the actor
    on audit entries.
    """

    org_id: str
    user_id: Optional[str] = None


async def get_org_context(
    x_org_id: str = Header(..., min_length=1, max_length=64),
    x_user_id: Optional[str] = Header(None, max_length=64),
) -> OrgContext:
    return OrgContext(org_id=x_org_id, user_id=x_user_id)
