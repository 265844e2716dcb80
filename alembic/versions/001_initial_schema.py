"""Initial schema — technicians, tickets, assignments, bonus ledger, settings.

Revision ID: 001
Revises: None
Create Date: 2026-10-18
"""

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import ARRAY

from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

MONEY = sa.Numeric(12, 2)


def upgrade() -> None:
    # Technicians
    op.create_table(
        "technicians",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("role", sa.String(20), nullable=False, server_default="technician"),
        sa.Column("is_backbone_specialist", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("is_vendor_specialist", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("force_home_maintenance", sa.Boolean, nullable=False, server_default=sa.false()),
    )
    op.create_index("idx_technicians_role", "technicians", ["role"])

    # Tickets
    op.create_table(
        "tickets",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("ticket_number", sa.String(20), nullable=False),
        sa.Column("ticket_code", sa.String(20), unique=True, nullable=True),
        sa.Column("type", sa.String(30), nullable=False),
        sa.Column("priority", sa.String(20), nullable=False, server_default="medium"),
        sa.Column("status", sa.String(30), nullable=False, server_default="open"),
        sa.Column("customer_name", sa.String(200), nullable=False),
        sa.Column("customer_phone", sa.String(50), nullable=False),
        sa.Column("customer_email", sa.String(200), nullable=True),
        sa.Column("location_ref", sa.Text, nullable=False),
        sa.Column("latitude", sa.Float, nullable=True),
        sa.Column("longitude", sa.Float, nullable=True),
        sa.Column("area", sa.String(200), nullable=True),
        sa.Column("title", sa.String(300), nullable=False),
        sa.Column("description", sa.Text, nullable=False, server_default=""),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.Column("sla_deadline", sa.DateTime(timezone=True), nullable=False),
        sa.Column("ticket_fee", MONEY, nullable=False, server_default="0"),
        sa.Column("transport_fee", MONEY, nullable=False, server_default="0"),
        sa.Column("bonus", MONEY, nullable=False, server_default="0"),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("duration_minutes", sa.Integer, nullable=True),
        sa.Column("perform_status", sa.String(20), nullable=True),
        sa.Column("action_description", sa.Text, nullable=True),
        sa.Column("proof_refs", ARRAY(sa.Text), nullable=False, server_default="{}"),
        sa.Column("speedtest_result", sa.Text, nullable=True),
        sa.Column("speedtest_ref", sa.Text, nullable=True),
        sa.Column("closed_note", sa.Text, nullable=True),
        sa.Column("rejection_reason", sa.Text, nullable=True),
        sa.Column("reopen_reason", sa.Text, nullable=True),
    )
    op.create_index("idx_tickets_status", "tickets", ["status"])
    op.create_index("idx_tickets_type_status", "tickets", ["type", "status"])
    op.create_index("idx_tickets_closed_at", "tickets", ["closed_at"])

    # Assignments
    op.create_table(
        "ticket_assignments",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "ticket_id",
            sa.Integer,
            sa.ForeignKey("tickets.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("technician_id", sa.Integer, sa.ForeignKey("technicians.id"), nullable=False),
        sa.Column("assignment_type", sa.String(10), nullable=False, server_default="manual"),
        sa.Column("active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column(
            "assigned_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
    )
    op.create_index("idx_assignments_ticket_active", "ticket_assignments", ["ticket_id", "active"])
    op.create_index(
        "idx_assignments_technician_active", "ticket_assignments", ["technician_id", "active"]
    )

    # Performance logs
    op.create_table(
        "performance_logs",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("technician_id", sa.Integer, sa.ForeignKey("technicians.id"), nullable=False),
        sa.Column(
            "ticket_id",
            sa.Integer,
            sa.ForeignKey("tickets.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("result", sa.String(20), nullable=False),
        sa.Column("completed_within_sla", sa.Boolean, nullable=False),
        sa.Column("duration_minutes", sa.Integer, nullable=False, server_default="0"),
        sa.Column("ticket_fee", MONEY, nullable=False, server_default="0"),
        sa.Column("transport_fee", MONEY, nullable=False, server_default="0"),
        sa.Column("bonus", MONEY, nullable=False, server_default="0"),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
    )
    op.create_index("idx_performance_technician", "performance_logs", ["technician_id"])
    op.create_index("idx_performance_ticket", "performance_logs", ["ticket_id"])

    # Settings (global tunables)
    op.create_table(
        "settings",
        sa.Column("key", sa.String(100), primary_key=True),
        sa.Column("value", sa.Text, nullable=True),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
    )

    # Per-technician fee overrides
    op.create_table(
        "technician_fees",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "technician_id",
            sa.Integer,
            sa.ForeignKey("technicians.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("ticket_type", sa.String(30), nullable=False),
        sa.Column("ticket_fee", MONEY, nullable=False, server_default="0"),
        sa.Column("transport_fee", MONEY, nullable=False, server_default="0"),
        sa.UniqueConstraint("technician_id", "ticket_type", name="uq_technician_fee_type"),
    )


def downgrade() -> None:
    op.drop_table("technician_fees")
    op.drop_table("settings")
    op.drop_table("performance_logs")
    op.drop_table("ticket_assignments")
    op.drop_table("tickets")
    op.drop_table("technicians")
