"""create account health schema

Revision ID: 0a1b2c3d4e5f
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "0a1b2c3d4e5f"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _uuid_pk(name: str) -> sa.Column:
    return sa.Column(
        name,
        postgresql.UUID(as_uuid=True),
        primary_key=True,
        server_default=sa.text("gen_random_uuid()"),
    )


def _account_fk() -> sa.Column:
    return sa.Column(
        "account_id",
        postgresql.UUID(as_uuid=True),
        sa.ForeignKey("accounts.account_id", ondelete="CASCADE"),
        nullable=False,
    )


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at", sa.DateTime(timezone=True), server_default=sa.text("now()")
    )


def upgrade() -> None:
    op.create_table(
        "accounts",
        _uuid_pk("account_id"),
        sa.Column("org_id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("industry", sa.String(100)),
        sa.Column("type", sa.String(50), nullable=False, server_default="CUSTOMER"),
        sa.Column("assigned_to_id", sa.String(64)),
        _created_at(),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()")
        ),
    )
    op.create_index("idx_accounts_org", "accounts", ["org_id"])

    op.create_table(
        "account_health",
        _uuid_pk("health_id"),
        sa.Column("org_id", sa.String(64), nullable=False),
        sa.Column(
            "account_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("accounts.account_id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("score", sa.Integer, nullable=False, server_default=sa.text("50")),
        sa.Column("previous_score", sa.Integer),
        sa.Column("risk_level", sa.String(20), nullable=False, server_default="MEDIUM"),
        sa.Column(
            "is_at_risk", sa.Boolean, nullable=False, server_default=sa.text("false")
        ),
        sa.Column(
            "risk_reasons",
            postgresql.JSONB,
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column(
            "degraded_dimensions",
            postgresql.JSONB,
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        *[
            sa.Column(name, sa.Integer, nullable=False, server_default=sa.text("50"))
            for name in (
                "engagement_score",
                "support_score",
                "relationship_score",
                "financial_score",
                "adoption_score",
            )
        ],
        sa.Column("last_login_at", sa.DateTime(timezone=True)),
        sa.Column("last_contact_at", sa.DateTime(timezone=True)),
        sa.Column("last_meeting_at", sa.DateTime(timezone=True)),
        sa.Column(
            "open_ticket_count", sa.Integer, nullable=False, server_default=sa.text("0")
        ),
        sa.Column(
            "calculated_at", sa.DateTime(timezone=True), server_default=sa.text("now()")
        ),
        _created_at(),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()")
        ),
        sa.CheckConstraint("score BETWEEN 0 AND 100", name="ck_health_score_range"),
        sa.CheckConstraint(
            "previous_score IS NULL OR previous_score BETWEEN 0 AND 100",
            name="ck_health_previous_score_range",
        ),
        sa.CheckConstraint(
            "engagement_score BETWEEN 0 AND 100 AND support_score BETWEEN 0 AND 100 "
            "AND relationship_score BETWEEN 0 AND 100 "
            "AND financial_score BETWEEN 0 AND 100 AND adoption_score BETWEEN 0 AND 100",
            name="ck_health_component_range",
        ),
        sa.CheckConstraint(
            "risk_level IN ('LOW', 'MEDIUM', 'HIGH', 'CRITICAL')",
            name="ck_health_risk_level",
        ),
        sa.CheckConstraint(
            "is_at_risk = (risk_level IN ('HIGH', 'CRITICAL'))",
            name="ck_health_at_risk_matches_level",
        ),
        sa.CheckConstraint(
            "open_ticket_count >= 0", name="ck_health_open_tickets_nonneg"
        ),
    )
    op.create_index(
        "idx_account_health_org_risk", "account_health", ["org_id", "risk_level"]
    )
    op.create_index(
        "idx_account_health_org_score", "account_health", ["org_id", "score"]
    )
    op.create_index(
        "idx_account_health_org_at_risk", "account_health", ["org_id", "is_at_risk"]
    )

    op.create_table(
        "contacts",
        _uuid_pk("contact_id"),
        sa.Column("org_id", sa.String(64), nullable=False),
        _account_fk(),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100)),
        sa.Column("email", sa.String(255)),
        sa.Column(
            "is_primary", sa.Boolean, nullable=False, server_default=sa.text("false")
        ),
        _created_at(),
    )
    op.create_index("idx_contacts_org_account", "contacts", ["org_id", "account_id"])

    op.create_table(
        "activities",
        _uuid_pk("activity_id"),
        sa.Column("org_id", sa.String(64), nullable=False),
        _account_fk(),
        sa.Column("type", sa.String(50), nullable=False),
        sa.Column("subject", sa.String(255)),
        sa.Column("description", sa.Text),
        sa.Column("workspace", sa.String(20), nullable=False, server_default="cs"),
        sa.Column("performed_by_id", sa.String(64)),
        sa.Column(
            "performed_by_type", sa.String(20), nullable=False, server_default="USER"
        ),
        sa.Column(
            "performed_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.CheckConstraint(
            "type IN ('CALL', 'EMAIL', 'MEETING', 'NOTE', 'TASK', "
            "'HEALTH_ALERT', 'PLAYBOOK_STARTED')",
            name="ck_activity_type",
        ),
        sa.CheckConstraint(
            "performed_by_type IN ('USER', 'AI_AGENT', 'SYSTEM', 'API')",
            name="ck_activity_actor_type",
        ),
    )
    op.create_index(
        "idx_activities_org_account_performed",
        "activities",
        ["org_id", "account_id", "performed_at"],
    )

    op.create_table(
        "notes",
        _uuid_pk("note_id"),
        sa.Column("org_id", sa.String(64), nullable=False),
        _account_fk(),
        sa.Column("body", sa.Text, nullable=False),
        _created_at(),
    )
    op.create_index(
        "idx_notes_org_account_created", "notes", ["org_id", "account_id", "created_at"]
    )

    op.create_table(
        "tickets",
        _uuid_pk("ticket_id"),
        sa.Column("org_id", sa.String(64), nullable=False),
        _account_fk(),
        sa.Column("subject", sa.String(255), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="NEW"),
        sa.Column("priority", sa.String(20), nullable=False, server_default="MEDIUM"),
        sa.Column("satisfaction_score", sa.Integer),
        _created_at(),
        sa.Column("resolved_at", sa.DateTime(timezone=True)),
        sa.CheckConstraint(
            "status IN ('NEW', 'OPEN', 'PENDING', 'RESOLVED', 'CLOSED')",
            name="ck_ticket_status",
        ),
        sa.CheckConstraint(
            "priority IN ('LOW', 'MEDIUM', 'HIGH', 'URGENT')",
            name="ck_ticket_priority",
        ),
        sa.CheckConstraint(
            "satisfaction_score IS NULL OR satisfaction_score BETWEEN 1 AND 5",
            name="ck_ticket_csat_range",
        ),
    )
    op.create_index(
        "idx_tickets_org_account_status", "tickets", ["org_id", "account_id", "status"]
    )

    op.create_table(
        "tasks",
        _uuid_pk("task_id"),
        sa.Column("org_id", sa.String(64), nullable=False),
        _account_fk(),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text),
        sa.Column("due_date", sa.DateTime(timezone=True)),
        sa.Column("priority", sa.String(20), nullable=False, server_default="MEDIUM"),
        sa.Column("status", sa.String(20), nullable=False, server_default="PENDING"),
        sa.Column("task_type", sa.String(50)),
        sa.Column("workspace", sa.String(20), nullable=False, server_default="cs"),
        sa.Column("assigned_to_id", sa.String(64)),
        sa.Column("created_by_id", sa.String(64)),
        sa.Column(
            "created_by_type", sa.String(20), nullable=False, server_default="USER"
        ),
        _created_at(),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()")
        ),
        sa.CheckConstraint(
            "priority IN ('LOW', 'MEDIUM', 'HIGH', 'URGENT')", name="ck_task_priority"
        ),
        sa.CheckConstraint(
            "status IN ('PENDING', 'IN_PROGRESS', 'COMPLETED', 'CANCELLED')",
            name="ck_task_status",
        ),
    )
    op.create_index(
        "idx_tasks_org_account_created", "tasks", ["org_id", "account_id", "created_at"]
    )

    op.create_table(
        "renewals",
        _uuid_pk("renewal_id"),
        sa.Column("org_id", sa.String(64), nullable=False),
        _account_fk(),
        sa.Column("status", sa.String(20), nullable=False, server_default="UPCOMING"),
        sa.Column("probability", sa.Integer, nullable=False, server_default="50"),
        sa.Column("contract_value", sa.Numeric(15, 2)),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=False),
        _created_at(),
        sa.CheckConstraint(
            "status IN ('UPCOMING', 'IN_PROGRESS', 'RENEWED', 'CHURNED')",
            name="ck_renewal_status",
        ),
        sa.CheckConstraint(
            "probability BETWEEN 0 AND 100", name="ck_renewal_probability"
        ),
    )
    op.create_index("idx_renewals_org_account", "renewals", ["org_id", "account_id"])

    op.create_table(
        "invoices",
        _uuid_pk("invoice_id"),
        sa.Column("org_id", sa.String(64), nullable=False),
        _account_fk(),
        sa.Column("number", sa.String(50), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="DRAFT"),
        sa.Column("total", sa.Numeric(15, 2), nullable=False, server_default="0"),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("paid_at", sa.DateTime(timezone=True)),
        _created_at(),
        sa.CheckConstraint(
            "status IN ('DRAFT', 'SENT', 'VIEWED', 'PAID', 'OVERDUE', 'CANCELLED')",
            name="ck_invoice_status",
        ),
    )
    op.create_index(
        "idx_invoices_org_account_due", "invoices", ["org_id", "account_id", "due_date"]
    )

    op.create_table(
        "usage_events",
        _uuid_pk("event_id"),
        sa.Column("org_id", sa.String(64), nullable=False),
        _account_fk(),
        sa.Column("event_type", sa.String(20), nullable=False),
        sa.Column("feature", sa.String(100)),
        sa.Column(
            "occurred_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.CheckConstraint(
            "event_type IN ('LOGIN', 'FEATURE_USED')", name="ck_usage_event_type"
        ),
    )
    op.create_index(
        "idx_usage_events_org_account_occurred",
        "usage_events",
        ["org_id", "account_id", "occurred_at"],
    )

    op.create_table(
        "audit_logs",
        _uuid_pk("audit_id"),
        sa.Column("org_id", sa.String(64), nullable=False),
        sa.Column("action", sa.String(30), nullable=False),
        sa.Column("module", sa.String(50), nullable=False),
        sa.Column("record_id", sa.String(64)),
        sa.Column("actor_type", sa.String(20), nullable=False),
        sa.Column("actor_id", sa.String(64)),
        sa.Column("previous_state", postgresql.JSONB),
        sa.Column("new_state", postgresql.JSONB),
        sa.Column("metadata", postgresql.JSONB),
        _created_at(),
    )
    op.create_index(
        "idx_audit_logs_org_module_created",
        "audit_logs",
        ["org_id", "module", "created_at"],
    )

    op.create_table(
        "playbooks",
        _uuid_pk("playbook_id"),
        sa.Column("org_id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("trigger", sa.String(30), nullable=False, server_default="MANUAL"),
        sa.Column("trigger_config", postgresql.JSONB),
        sa.Column(
            "steps", postgresql.JSONB, nullable=False, server_default=sa.text("'[]'")
        ),
        sa.Column(
            "is_active", sa.Boolean, nullable=False, server_default=sa.text("true")
        ),
        _created_at(),
        sa.CheckConstraint(
            "trigger IN ('MANUAL', 'NEW_CUSTOMER', 'RENEWAL_APPROACHING', "
            "'HEALTH_DROP', 'TICKET_ESCALATION')",
            name="ck_playbook_trigger",
        ),
    )
    op.create_index(
        "idx_playbooks_org_trigger_active",
        "playbooks",
        ["org_id", "trigger", "is_active"],
    )

    op.create_table(
        "playbook_runs",
        _uuid_pk("run_id"),
        sa.Column("org_id", sa.String(64), nullable=False),
        sa.Column(
            "playbook_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("playbooks.playbook_id", ondelete="CASCADE"),
            nullable=False,
        ),
        _account_fk(),
        sa.Column("status", sa.String(20), nullable=False, server_default="IN_PROGRESS"),
        sa.Column("current_step", sa.Integer, nullable=False, server_default="1"),
        sa.Column("total_steps", sa.Integer, nullable=False, server_default="0"),
        sa.Column("started_by_id", sa.String(64)),
        sa.Column("metadata", postgresql.JSONB),
        sa.Column(
            "started_at", sa.DateTime(timezone=True), server_default=sa.text("now()")
        ),
        sa.CheckConstraint(
            "status IN ('IN_PROGRESS', 'COMPLETED', 'CANCELLED')",
            name="ck_playbook_run_status",
        ),
    )
    op.create_index(
        "idx_playbook_runs_playbook_account_status",
        "playbook_runs",
        ["playbook_id", "account_id", "status"],
    )


def downgrade() -> None:
    for table in (
        "playbook_runs",
        "playbooks",
        "audit_logs",
        "usage_events",
        "invoices",
        "renewals",
        "tasks",
        "tickets",
        "notes",
        "activities",
        "contacts",
        "account_health",
        "accounts",
    ):
        op.drop_table(table)
