"""SQLAlchemy ORM models — maps to PostgreSQL tables."""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fieldops.adapters.persistence.database import Base


class TechnicianModel(Base):
    __tablename__ = "technicians"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="technician")
    is_backbone_specialist: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_vendor_specialist: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    force_home_maintenance: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    assignments: Mapped[list["AssignmentModel"]] = relationship(back_populates="technician")

    __table_args__ = (Index("idx_technicians_role", "role"),)


class TicketModel(Base):
    __tablename__ = "tickets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    ticket_number: Mapped[str] = mapped_column(String(20), nullable=False)
    ticket_code: Mapped[str | None] = mapped_column(String(20), unique=True, nullable=True)
    type: Mapped[str] = mapped_column(String(30), nullable=False)
    priority: Mapped[str] = mapped_column(String(20), nullable=False, default="medium")
    status: Mapped[str] = mapped_column(String(30), nullable=False, default="open")
    customer_name: Mapped[str] = mapped_column(String(200), nullable=False)
    customer_phone: Mapped[str] = mapped_column(String(50), nullable=False)
    customer_email: Mapped[str | None] = mapped_column(String(200), nullable=True)
    location_ref: Mapped[str] = mapped_column(Text, nullable=False)
    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    area: Mapped[str | None] = mapped_column(String(200), nullable=True)
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    sla_deadline: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    ticket_fee: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    transport_fee: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    bonus: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))

    closed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    duration_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    perform_status: Mapped[str | None] = mapped_column(String(20), nullable=True)
    action_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    proof_refs: Mapped[list[str]] = mapped_column(ARRAY(Text), nullable=False, default=list)
    speedtest_result: Mapped[str | None] = mapped_column(Text, nullable=True)
    speedtest_ref: Mapped[str | None] = mapped_column(Text, nullable=True)
    closed_note: Mapped[str | None] = mapped_column(Text, nullable=True)

    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    reopen_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    assignments: Mapped[list["AssignmentModel"]] = relationship(back_populates="ticket")

    __table_args__ = (
        Index("idx_tickets_status", "status"),
        Index("idx_tickets_type_status", "type", "status"),
        Index("idx_tickets_closed_at", "closed_at"),
    )


class AssignmentModel(Base):
    __tablename__ = "ticket_assignments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    ticket_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False
    )
    technician_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("technicians.id"), nullable=False
    )
    assignment_type: Mapped[str] = mapped_column(String(10), nullable=False, default="manual")
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    assigned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    ticket: Mapped["TicketModel"] = relationship(back_populates="assignments")
    technician: Mapped["TechnicianModel"] = relationship(back_populates="assignments")

    __table_args__ = (
        Index("idx_assignments_ticket_active", "ticket_id", "active"),
        Index("idx_assignments_technician_active", "technician_id", "active"),
    )


class PerformanceLogModel(Base):
    __tablename__ = "performance_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    technician_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("technicians.id"), nullable=False
    )
    ticket_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False
    )
    result: Mapped[str] = mapped_column(String(20), nullable=False)
    completed_within_sla: Mapped[bool] = mapped_column(Boolean, nullable=False)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    ticket_fee: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    transport_fee: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    bonus: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        Index("idx_performance_technician", "technician_id"),
        Index("idx_performance_ticket", "ticket_id"),
    )


class SettingModel(Base):
    __tablename__ = "settings"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value: Mapped[str | None] = mapped_column(Text, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )


class TechnicianFeeModel(Base):
    __tablename__ = "technician_fees"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    technician_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("technicians.id", ondelete="CASCADE"), nullable=False
    )
    ticket_type: Mapped[str] = mapped_column(String(30), nullable=False)
    ticket_fee: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    transport_fee: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))

    __table_args__ = (
        UniqueConstraint("technician_id", "ticket_type", name="uq_technician_fee_type"),
    )
