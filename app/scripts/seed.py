"""Sample tenants, accounts and signal data, followed by a health recalculation.

Run with ``python -m app.scripts.seed``.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy import func, select, text

from app.core.config import settings
from app.models import (
    Account,
    AccountHealth,
    Activity,
    Contact,
    Invoice,
    Note,
    Playbook,
    Renewal,
    Task,
    Ticket,
    UsageEvent,
)
from app.schemas.common import (
    ActivityType,
    ActorType,
    InvoiceStatus,
    PlaybookTrigger,
    RenewalStatus,
    TicketPriority,
    TicketStatus,
    UsageEventType,
)
from app.services.health_recalculation import build_recalculation_service

ORG_IDS = ["org_acme", "org_globex"]
INDUSTRIES = ["Software", "Healthcare", "Finance", "Retail", "Logistics"]
FEATURES = ["reports", "dashboards", "exports", "automations", "integrations", "api"]

# (name suffix, profile); the profile sets how much signal each account gets
PROFILES = [
    ("Thriving", "healthy"),
    ("Steady", "healthy"),
    ("Quiet", "neglected"),
    ("Escalating", "troubled"),
    ("Lapsing", "troubled"),
    ("Greenfield", "empty"),
]

HEALTH_DROP_STEPS = [
    {
        "order": 1,
        "day_offset": 0,
        "title": "Review account health",
        "task_type": "REVIEW",
        "assignee_type": "CSM",
    },
    {
        "order": 2,
        "day_offset": 2,
        "title": "Schedule executive check-in",
        "task_type": "MEETING",
        "assignee_type": "ACCOUNT_OWNER",
    },
    {
        "order": 3,
        "day_offset": 7,
        "title": "Agree recovery plan",
        "description": "Document owners and dates for each open risk",
        "task_type": "FOLLOW_UP",
        "assignee_type": "CSM",
    },
]


def _signal_rows(org_id, account, profile, index, now):
    """Build the activity/ticket/financial/usage rows for one account."""
    rows = []
    account_id = account.account_id

    if profile == "empty":
        return rows

    contact_count = {"healthy": 5, "neglected": 1, "troubled": 2}[profile]
    for n in range(contact_count):
        rows.append(
            Contact(
                org_id=org_id,
                account_id=account_id,
                first_name=f"Contact{n + 1}",
                last_name=account.name.split()[0],
                email=f"contact{n + 1}.{index}@example.com",
                is_primary=(n == 0 and profile != "neglected"),
            )
        )

    activity_days = {
        "healthy": [1, 3, 6, 10, 20],
        "neglected": [75],
        "troubled": [35, 50],
    }[profile]
    for i, days in enumerate(activity_days):
        rows.append(
            Activity(
                org_id=org_id,
                account_id=account_id,
                type=[ActivityType.CALL, ActivityType.EMAIL, ActivityType.MEETING][
                    i % 3
                ].value,
                subject=f"Touchpoint {i + 1}",
                performed_at=now - timedelta(days=days),
            )
        )

    for i in range({"healthy": 3, "neglected": 0, "troubled": 1}[profile]):
        rows.append(
            Note(
                org_id=org_id,
                account_id=account_id,
                body=f"Call notes {i + 1}",
                created_at=now - timedelta(days=5 + i * 10),
            )
        )

    if profile == "troubled":
        open_priorities = [
            TicketPriority.URGENT,
            TicketPriority.HIGH,
            TicketPriority.MEDIUM,
        ]
        for i, priority in enumerate(open_priorities):
            rows.append(
                Ticket(
                    org_id=org_id,
                    account_id=account_id,
                    subject=f"Outage report {i + 1}",
                    status=TicketStatus.OPEN.value,
                    priority=priority.value,
                )
            )
        rows.append(
            Ticket(
                org_id=org_id,
                account_id=account_id,
                subject="Billing question",
                status=TicketStatus.RESOLVED.value,
                priority=TicketPriority.LOW.value,
                satisfaction_score=2,
                resolved_at=now - timedelta(days=20),
            )
        )
    elif profile == "healthy":
        rows.append(
            Ticket(
                org_id=org_id,
                account_id=account_id,
                subject="Feature question",
                status=TicketStatus.CLOSED.value,
                priority=TicketPriority.LOW.value,
                satisfaction_score=5,
                resolved_at=now - timedelta(days=12),
            )
        )

    rows.append(
        Renewal(
            org_id=org_id,
            account_id=account_id,
            status=RenewalStatus.UPCOMING.value,
            probability={"healthy": 85, "neglected": 45, "troubled": 15}[profile],
            contract_value=Decimal("24000.00") + index * 1000,
            end_date=now + timedelta(days=60 + index * 15),
        )
    )

    invoice_plan = {
        "healthy": [InvoiceStatus.PAID, InvoiceStatus.PAID],
        "neglected": [InvoiceStatus.PAID],
        "troubled": [InvoiceStatus.SENT, InvoiceStatus.VIEWED],
    }[profile]
    for i, status in enumerate(invoice_plan):
        due = now - timedelta(days=15 + i * 30)
        rows.append(
            Invoice(
                org_id=org_id,
                account_id=account_id,
                number=f"INV-{org_id[-3:].upper()}-{index:03d}-{i + 1}",
                status=status.value,
                total=Decimal("2000.00"),
                due_date=due,
                paid_at=due - timedelta(days=2) if status == InvoiceStatus.PAID else None,
            )
        )

    if profile == "healthy":
        rows.append(
            Task(
                org_id=org_id,
                account_id=account_id,
                title="Quarterly business review prep",
                task_type="MEETING",
                assigned_to_id=account.assigned_to_id,
            )
        )
        for day in range(0, 28, 2):
            rows.append(
                UsageEvent(
                    org_id=org_id,
                    account_id=account_id,
                    event_type=UsageEventType.LOGIN.value,
                    occurred_at=now - timedelta(days=day),
                )
            )
            for feature in FEATURES[: 3 + index % 3]:
                rows.append(
                    UsageEvent(
                        org_id=org_id,
                        account_id=account_id,
                        event_type=UsageEventType.FEATURE_USED.value,
                        feature=feature,
                        occurred_at=now - timedelta(days=day, hours=1),
                    )
                )
    elif profile == "troubled":
        rows.append(
            UsageEvent(
                org_id=org_id,
                account_id=account_id,
                event_type=UsageEventType.LOGIN.value,
                occurred_at=now - timedelta(days=70),
            )
        )

    return rows


async def seed():
    engine = create_async_engine(settings.DATABASE_URL, echo=False)
    session_maker = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )
    now = datetime.now(timezone.utc)

    async with session_maker() as session:
        print("Seeding account health sample data")

        # TRUNCATE ... CASCADE handles FK ordering in one statement
        await session.execute(
            text(
                "TRUNCATE TABLE "
                "playbook_runs, playbooks, audit_logs, usage_events, invoices, "
                "renewals, tasks, tickets, notes, activities, contacts, "
                "account_health, accounts "
                "CASCADE"
            )
        )
        await session.commit()
        print("Cleared existing data")

        for org_id in ORG_IDS:
            session.add(
                Playbook(
                    org_id=org_id,
                    name="At-risk recovery",
                    trigger=PlaybookTrigger.HEALTH_DROP.value,
                    trigger_config={"health_score_threshold": 40},
                    steps=HEALTH_DROP_STEPS,
                )
            )

            accounts = []
            for index, (suffix, profile) in enumerate(PROFILES, 1):
                account = Account(
                    org_id=org_id,
                    name=f"{suffix} {org_id.split('_')[1].title()} Customer",
                    industry=INDUSTRIES[index % len(INDUSTRIES)],
                    assigned_to_id=f"csm_{index % 3 + 1}",
                )
                session.add(account)
                accounts.append((account, profile, index))
            await session.flush()

            for account, profile, index in accounts:
                session.add_all(_signal_rows(org_id, account, profile, index, now))
            await session.flush()
            print(f"[{org_id}] Created {len(accounts)} accounts with signals")

        await session.commit()

    for org_id in ORG_IDS:
        async with session_maker() as session:
            service = build_recalculation_service(session)
            summary = await service.recalculate_all_health(
                org_id, actor_type=ActorType.SYSTEM
            )
            print(
                f"[{org_id}] Recalculated {summary.updated_count} accounts "
                f"({summary.failed_count} failed)"
            )

    async with session_maker() as session:
        result = await session.execute(
            select(AccountHealth.risk_level, func.count()).group_by(
                AccountHealth.risk_level
            )
        )
        print("\nValidation:")
        for level, count in result.all():
            print(f"  {level}: {count}")
        print("Seeding complete")

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(seed())
