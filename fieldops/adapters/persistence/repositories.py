"""SQLAlchemy repository implementations."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime

from sqlalchemy import delete, func, select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from fieldops.adapters.persistence.models import (
    AssignmentModel,
    PerformanceLogModel,
    SettingModel,
    TechnicianFeeModel,
    TechnicianModel,
    TicketModel,
)
from fieldops.application.ports.assignment_repo import AssignmentRepository
from fieldops.application.ports.performance_log_repo import PerformanceLogRepository
from fieldops.application.ports.settings_store import SettingsStore
from fieldops.application.ports.technician_directory import TechnicianDirectory
from fieldops.application.ports.technician_fee_repo import TechnicianFeeRepository
from fieldops.application.ports.ticket_repo import TicketRepository
from fieldops.domain.entities.assignment import Assignment
from fieldops.domain.entities.fees import TechnicianFee
from fieldops.domain.entities.performance_log import PerformanceLog
from fieldops.domain.entities.technician import Technician
from fieldops.domain.entities.ticket import Ticket
from fieldops.domain.value_objects.enums import (
    ACTIVE_JOB_STATUSES,
    AssignmentType,
    PerformStatus,
    TicketPriority,
    TicketStatus,
    TicketType,
    UserRole,
)
from fieldops.domain.value_objects.geo_point import GeoPoint
from fieldops.domain.value_objects.money import to_money

_BUSY = [s.value for s in ACTIVE_JOB_STATUSES]

# ─── Mappers ─────────────────────────────────────────────────────────


def _ticket_to_domain(m: TicketModel) -> Ticket:
    try:
        priority: TicketPriority | str = TicketPriority(m.priority)
    except ValueError:
        priority = m.priority
    return Ticket(
        id=m.id,
        ticket_number=m.ticket_number,
        ticket_code=m.ticket_code,
        type=TicketType(m.type),
        priority=priority,
        status=TicketStatus(m.status),
        customer_name=m.customer_name,
        customer_phone=m.customer_phone,
        customer_email=m.customer_email,
        location_ref=m.location_ref,
        location=GeoPoint.try_create(m.latitude, m.longitude),
        area=m.area,
        title=m.title,
        description=m.description or "",
        created_at=m.created_at,
        sla_deadline=m.sla_deadline,
        ticket_fee=to_money(m.ticket_fee),
        transport_fee=to_money(m.transport_fee),
        bonus=to_money(m.bonus),
        closed_at=m.closed_at,
        duration_minutes=m.duration_minutes,
        perform_status=PerformStatus(m.perform_status) if m.perform_status else None,
        action_description=m.action_description,
        proof_refs=list(m.proof_refs or []),
        speedtest_result=m.speedtest_result,
        speedtest_ref=m.speedtest_ref,
        closed_note=m.closed_note,
        rejection_reason=m.rejection_reason,
        reopen_reason=m.reopen_reason,
    )


def _ticket_values(t: Ticket) -> dict:
    """Column values for every field a transition may change."""
    return dict(
        type=t.type.value,
        priority=t.priority.value if isinstance(t.priority, TicketPriority) else t.priority,
        status=TicketStatus(t.status).value,
        latitude=t.location.latitude if t.location else None,
        longitude=t.location.longitude if t.location else None,
        area=t.area,
        sla_deadline=t.sla_deadline,
        ticket_fee=t.ticket_fee,
        transport_fee=t.transport_fee,
        bonus=t.bonus,
        closed_at=t.closed_at,
        duration_minutes=t.duration_minutes,
        perform_status=t.perform_status.value if t.perform_status else None,
        action_description=t.action_description,
        proof_refs=list(t.proof_refs),
        speedtest_result=t.speedtest_result,
        speedtest_ref=t.speedtest_ref,
        closed_note=t.closed_note,
        rejection_reason=t.rejection_reason,
        reopen_reason=t.reopen_reason,
    )


def _technician_to_domain(m: TechnicianModel) -> Technician:
    return Technician(
        id=m.id,
        name=m.name,
        role=UserRole(m.role),
        is_backbone_specialist=m.is_backbone_specialist,
        is_vendor_specialist=m.is_vendor_specialist,
        is_active=m.is_active,
        force_home_maintenance=m.force_home_maintenance,
    )


def _assignment_to_domain(m: AssignmentModel) -> Assignment:
    return Assignment(
        id=m.id,
        ticket_id=m.ticket_id,
        technician_id=m.technician_id,
        assigned_at=m.assigned_at,
        assignment_type=AssignmentType(m.assignment_type),
        active=m.active,
    )


def _performance_to_domain(m: PerformanceLogModel) -> PerformanceLog:
    return PerformanceLog(
        id=m.id,
        technician_id=m.technician_id,
        ticket_id=m.ticket_id,
        result=PerformStatus(m.result),
        completed_within_sla=m.completed_within_sla,
        duration_minutes=m.duration_minutes,
        ticket_fee=to_money(m.ticket_fee),
        transport_fee=to_money(m.transport_fee),
        bonus=to_money(m.bonus),
        created_at=m.created_at,
    )


def _fee_to_domain(m: TechnicianFeeModel) -> TechnicianFee:
    return TechnicianFee(
        id=m.id,
        technician_id=m.technician_id,
        ticket_type=TicketType(m.ticket_type),
        ticket_fee=to_money(m.ticket_fee),
        transport_fee=to_money(m.transport_fee),
    )


# ─── Repositories ────────────────────────────────────────────────────


class SqlTicketRepository(TicketRepository):
    def __init__(self, session: AsyncSession):
        self._s = session

    async def add(self, ticket: Ticket) -> Ticket:
        m = TicketModel(
            ticket_number=ticket.ticket_number,
            ticket_code=ticket.ticket_code,
            customer_name=ticket.customer_name,
            customer_phone=ticket.customer_phone,
            customer_email=ticket.customer_email,
            location_ref=ticket.location_ref,
            title=ticket.title,
            description=ticket.description,
            created_at=ticket.created_at,
            **_ticket_values(ticket),
        )
        self._s.add(m)
        await self._s.flush()
        ticket.id = m.id
        return ticket

    async def get_by_id(self, ticket_id: int) -> Ticket | None:
        m = await self._s.get(TicketModel, ticket_id)
        return _ticket_to_domain(m) if m else None

    async def get_for_update(self, ticket_id: int) -> Ticket | None:
        result = await self._s.execute(
            select(TicketModel)
            .where(TicketModel.id == ticket_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        m = result.scalar_one_or_none()
        return _ticket_to_domain(m) if m else None

    async def claim_open(self, ticket_id: int) -> Ticket | None:
        result = await self._s.execute(
            select(TicketModel)
            .where(TicketModel.id == ticket_id, TicketModel.status == TicketStatus.OPEN.value)
            .with_for_update(skip_locked=True)
            .execution_options(populate_existing=True)
        )
        m = result.scalar_one_or_none()
        return _ticket_to_domain(m) if m else None

    async def update(self, ticket: Ticket) -> Ticket:
        await self._s.execute(
            update(TicketModel)
            .where(TicketModel.id == ticket.id)
            .values(**_ticket_values(ticket))
        )
        await self._s.flush()
        return ticket

    async def list_by_status(self, statuses: Iterable[TicketStatus]) -> list[Ticket]:
        result = await self._s.execute(
            select(TicketModel)
            .where(TicketModel.status.in_([TicketStatus(s).value for s in statuses]))
            .order_by(TicketModel.created_at, TicketModel.id)
        )
        return [_ticket_to_domain(m) for m in result.scalars()]

    async def next_ticket_code(self, day: date) -> str:
        prefix = day.strftime("%y%m%d")
        result = await self._s.execute(
            select(func.max(TicketModel.ticket_code)).where(TicketModel.ticket_code.like(f"{prefix}%"))
        )
        last = result.scalar_one_or_none()
        seq = 1
        if last and last[6:].isdigit():
            seq = int(last[6:]) + 1
        return f"{prefix}{seq:04d}"

    def _closed_by(self, technician_id: int, since: datetime):
        return (
            select(TicketModel)
            .join(AssignmentModel, AssignmentModel.ticket_id == TicketModel.id)
            .where(
                AssignmentModel.technician_id == technician_id,
                AssignmentModel.active.is_(True),
                TicketModel.status == TicketStatus.CLOSED.value,
                TicketModel.closed_at >= since,
            )
        )

    async def count_closed_by(
        self, technician_id: int, since: datetime, types: Iterable[TicketType]
    ) -> int:
        query = self._closed_by(technician_id, since).where(
            TicketModel.type.in_([t.value for t in types])
        )
        result = await self._s.execute(select(func.count()).select_from(query.subquery()))
        return int(result.scalar_one())

    async def last_closed_by(self, technician_id: int, since: datetime) -> Ticket | None:
        result = await self._s.execute(
            self._closed_by(technician_id, since).order_by(TicketModel.closed_at.desc()).limit(1)
        )
        m = result.scalars().first()
        return _ticket_to_domain(m) if m else None

    async def active_job_for(self, technician_id: int) -> Ticket | None:
        result = await self._s.execute(
            select(TicketModel)
            .join(AssignmentModel, AssignmentModel.ticket_id == TicketModel.id)
            .where(
                AssignmentModel.technician_id == technician_id,
                AssignmentModel.active.is_(True),
                TicketModel.status.in_(_BUSY),
            )
            .order_by(TicketModel.id)
            .limit(1)
        )
        m = result.scalars().first()
        return _ticket_to_domain(m) if m else None

    async def list_stale_assigned(self, assigned_before: datetime) -> list[Ticket]:
        stale_ids = (
            select(AssignmentModel.ticket_id)
            .join(TicketModel, TicketModel.id == AssignmentModel.ticket_id)
            .where(
                AssignmentModel.active.is_(True),
                AssignmentModel.assigned_at < assigned_before,
                TicketModel.status.in_(
                    [TicketStatus.ASSIGNED.value, TicketStatus.WAITING_ASSIGNMENT.value]
                ),
                TicketModel.type.in_(
                    [TicketType.HOME_MAINTENANCE.value, TicketType.INSTALLATION.value]
                ),
            )
        )
        result = await self._s.execute(
            select(TicketModel).where(TicketModel.id.in_(stale_ids)).order_by(TicketModel.id)
        )
        return [_ticket_to_domain(m) for m in result.scalars()]


class SqlAssignmentRepository(AssignmentRepository):
    def __init__(self, session: AsyncSession):
        self._s = session

    async def add(self, assignment: Assignment) -> Assignment:
        m = AssignmentModel(
            ticket_id=assignment.ticket_id,
            technician_id=assignment.technician_id,
            assignment_type=assignment.assignment_type.value,
            active=assignment.active,
            assigned_at=assignment.assigned_at,
        )
        self._s.add(m)
        await self._s.flush()
        assignment.id = m.id
        return assignment

    async def active_for_ticket(self, ticket_id: int) -> list[Assignment]:
        result = await self._s.execute(
            select(AssignmentModel)
            .where(AssignmentModel.ticket_id == ticket_id, AssignmentModel.active.is_(True))
            .order_by(AssignmentModel.id)
            .execution_options(populate_existing=True)
        )
        return [_assignment_to_domain(m) for m in result.scalars()]

    async def deactivate_all(self, ticket_id: int) -> int:
        result = await self._s.execute(
            update(AssignmentModel)
            .where(AssignmentModel.ticket_id == ticket_id, AssignmentModel.active.is_(True))
            .values(active=False)
            .execution_options(synchronize_session="fetch")
        )
        await self._s.flush()
        return result.rowcount or 0

    async def history_for_ticket(self, ticket_id: int) -> list[Assignment]:
        result = await self._s.execute(
            select(AssignmentModel)
            .where(AssignmentModel.ticket_id == ticket_id)
            .order_by(AssignmentModel.id)
        )
        return [_assignment_to_domain(m) for m in result.scalars()]


class SqlTechnicianDirectory(TechnicianDirectory):
    def __init__(self, session: AsyncSession):
        self._s = session

    async def get_by_id(self, technician_id: int) -> Technician | None:
        m = await self._s.get(TechnicianModel, technician_id)
        return _technician_to_domain(m) if m else None

    async def lock(self, technician_ids: Iterable[int]) -> None:
        ids = sorted(set(technician_ids))
        if not ids:
            return
        # Fixed id order so two dispatches locking the same pair cannot deadlock
        await self._s.execute(
            select(TechnicianModel.id)
            .where(TechnicianModel.id.in_(ids))
            .order_by(TechnicianModel.id)
            .with_for_update()
        )

    async def list_free(self, exclude_id: int | None = None) -> list[Technician]:
        busy = (
            select(AssignmentModel.technician_id)
            .join(TicketModel, TicketModel.id == AssignmentModel.ticket_id)
            .where(AssignmentModel.active.is_(True), TicketModel.status.in_(_BUSY))
        )
        query = select(TechnicianModel).where(
            TechnicianModel.role == UserRole.TECHNICIAN.value,
            TechnicianModel.is_active.is_(True),
            TechnicianModel.id.not_in(busy),
        )
        if exclude_id is not None:
            query = query.where(TechnicianModel.id != exclude_id)
        result = await self._s.execute(query.order_by(TechnicianModel.name))
        return [_technician_to_domain(m) for m in result.scalars()]


class SqlSettingsStore(SettingsStore):
    def __init__(self, session: AsyncSession):
        self._s = session

    async def get(self, key: str) -> str | None:
        m = await self._s.get(SettingModel, key)
        return m.value if m else None

    async def set(self, key: str, value: str | None) -> None:
        stmt = insert(SettingModel).values(key=key, value=value)
        await self._s.execute(
            stmt.on_conflict_do_update(
                index_elements=[SettingModel.key],
                set_={"value": stmt.excluded.value, "updated_at": func.now()},
            )
        )
        await self._s.flush()

    async def get_all(self) -> dict[str, str | None]:
        result = await self._s.execute(select(SettingModel).order_by(SettingModel.key))
        return {m.key: m.value for m in result.scalars()}


class SqlTechnicianFeeRepository(TechnicianFeeRepository):
    def __init__(self, session: AsyncSession):
        self._s = session

    async def get_for_type(self, technician_id: int, ticket_type: TicketType) -> TechnicianFee | None:
        result = await self._s.execute(
            select(TechnicianFeeModel).where(
                TechnicianFeeModel.technician_id == technician_id,
                TechnicianFeeModel.ticket_type == ticket_type.value,
            )
        )
        m = result.scalar_one_or_none()
        return _fee_to_domain(m) if m else None

    async def list_for_technician(self, technician_id: int) -> list[TechnicianFee]:
        result = await self._s.execute(
            select(TechnicianFeeModel)
            .where(TechnicianFeeModel.technician_id == technician_id)
            .order_by(TechnicianFeeModel.ticket_type)
        )
        return [_fee_to_domain(m) for m in result.scalars()]

    async def upsert(self, fee: TechnicianFee) -> TechnicianFee:
        stmt = insert(TechnicianFeeModel).values(
            technician_id=fee.technician_id,
            ticket_type=fee.ticket_type.value,
            ticket_fee=fee.ticket_fee,
            transport_fee=fee.transport_fee,
        )
        result = await self._s.execute(
            stmt.on_conflict_do_update(
                constraint="uq_technician_fee_type",
                set_={
                    "ticket_fee": stmt.excluded.ticket_fee,
                    "transport_fee": stmt.excluded.transport_fee,
                },
            ).returning(TechnicianFeeModel.id)
        )
        fee.id = result.scalar_one()
        return fee


class SqlPerformanceLogRepository(PerformanceLogRepository):
    def __init__(self, session: AsyncSession):
        self._s = session

    async def add(self, log: PerformanceLog) -> PerformanceLog:
        m = PerformanceLogModel(
            technician_id=log.technician_id,
            ticket_id=log.ticket_id,
            result=log.result.value,
            completed_within_sla=log.completed_within_sla,
            duration_minutes=log.duration_minutes,
            ticket_fee=log.ticket_fee,
            transport_fee=log.transport_fee,
            bonus=log.bonus,
        )
        if log.created_at is not None:
            m.created_at = log.created_at
        self._s.add(m)
        await self._s.flush()
        log.id = m.id
        return log

    async def delete_for_ticket(self, ticket_id: int) -> int:
        result = await self._s.execute(
            delete(PerformanceLogModel).where(PerformanceLogModel.ticket_id == ticket_id)
        )
        await self._s.flush()
        return result.rowcount or 0

    async def list_for_ticket(self, ticket_id: int) -> list[PerformanceLog]:
        result = await self._s.execute(
            select(PerformanceLogModel)
            .where(PerformanceLogModel.ticket_id == ticket_id)
            .order_by(PerformanceLogModel.id)
        )
        return [_performance_to_domain(m) for m in result.scalars()]

    async def list_for_technician(self, technician_id: int) -> list[PerformanceLog]:
        result = await self._s.execute(
            select(PerformanceLogModel)
            .where(PerformanceLogModel.technician_id == technician_id)
            .order_by(PerformanceLogModel.id)
        )
        return [_performance_to_domain(m) for m in result.scalars()]
