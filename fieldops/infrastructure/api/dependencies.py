"""FastAPI dependency injection — wires adapters into use cases."""

from __future__ import annotations

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from fieldops.adapters.geocoder.map_link_resolver import MapLinkResolver
from fieldops.adapters.geocoder.nominatim_adapter import NominatimAreaLookup
from fieldops.adapters.persistence.database import get_session
from fieldops.adapters.persistence.repositories import (
    SqlAssignmentRepository,
    SqlPerformanceLogRepository,
    SqlSettingsStore,
    SqlTechnicianDirectory,
    SqlTechnicianFeeRepository,
    SqlTicketRepository,
)
from fieldops.adapters.persistence.unit_of_work import SqlUnitOfWork
from fieldops.application.use_cases.auto_assign import DispatchEngine
from fieldops.application.use_cases.bonus_ledger import BonusLedger
from fieldops.application.use_cases.create_ticket import CreateTicketUseCase
from fieldops.application.use_cases.lifecycle import LifecycleEngine
from fieldops.application.use_cases.manage_fees import ManageFeesUseCase
from fieldops.application.use_cases.recalculate_bonuses import RecalculateBonusesUseCase
from fieldops.application.use_cases.reset_stale_assignments import ResetStaleAssignmentsUseCase
from fieldops.application.use_cases.technician_reports import TechnicianReportsUseCase
from fieldops.config import settings
from fieldops.domain.errors import PermissionDenied
from fieldops.domain.policies.transitions import Actor
from fieldops.domain.value_objects.enums import UserRole

# Singleton adapters (stateless or with internal caching)
_resolver = MapLinkResolver()
_area_lookup = NominatimAreaLookup()
_engine_config = settings.engine_config()


def get_actor(
    x_user_id: int | None = Header(default=None),
    x_user_role: str = Header(default=UserRole.TECHNICIAN.value),
) -> Actor:
    """Identity of the caller, as forwarded by the authenticating gateway."""
    try:
        role = UserRole(x_user_role.strip().lower())
    except ValueError:
        raise PermissionDenied(f"Unknown role '{x_user_role}'") from None
    return Actor(user_id=x_user_id, role=role)


def get_ticket_repo(session: AsyncSession = Depends(get_session)) -> SqlTicketRepository:
    return SqlTicketRepository(session)


def get_assignment_repo(session: AsyncSession = Depends(get_session)) -> SqlAssignmentRepository:
    return SqlAssignmentRepository(session)


def _ledger(session: AsyncSession) -> BonusLedger:
    return BonusLedger(
        assignment_repo=SqlAssignmentRepository(session),
        performance_repo=SqlPerformanceLogRepository(session),
        fee_repo=SqlTechnicianFeeRepository(session),
        settings=SqlSettingsStore(session),
    )


def get_create_ticket_uc(session: AsyncSession = Depends(get_session)) -> CreateTicketUseCase:
    return CreateTicketUseCase(
        uow=SqlUnitOfWork(session),
        ticket_repo=SqlTicketRepository(session),
        settings=SqlSettingsStore(session),
        resolver=_resolver,
        config=_engine_config,
        area_lookup=_area_lookup,
    )


def get_dispatch_engine(session: AsyncSession = Depends(get_session)) -> DispatchEngine:
    return DispatchEngine(
        uow=SqlUnitOfWork(session),
        ticket_repo=SqlTicketRepository(session),
        assignment_repo=SqlAssignmentRepository(session),
        directory=SqlTechnicianDirectory(session),
        settings=SqlSettingsStore(session),
        resolver=_resolver,
        config=_engine_config,
    )


def get_lifecycle_engine(session: AsyncSession = Depends(get_session)) -> LifecycleEngine:
    return LifecycleEngine(
        uow=SqlUnitOfWork(session),
        ticket_repo=SqlTicketRepository(session),
        assignment_repo=SqlAssignmentRepository(session),
        directory=SqlTechnicianDirectory(session),
        settings=SqlSettingsStore(session),
        ledger=_ledger(session),
        config=_engine_config,
    )


def get_recalculate_bonuses_uc(session: AsyncSession = Depends(get_session)) -> RecalculateBonusesUseCase:
    return RecalculateBonusesUseCase(
        uow=SqlUnitOfWork(session),
        ticket_repo=SqlTicketRepository(session),
        ledger=_ledger(session),
    )


def get_reset_stale_uc(session: AsyncSession = Depends(get_session)) -> ResetStaleAssignmentsUseCase:
    return ResetStaleAssignmentsUseCase(
        uow=SqlUnitOfWork(session),
        ticket_repo=SqlTicketRepository(session),
        assignment_repo=SqlAssignmentRepository(session),
        config=_engine_config,
    )


def get_manage_fees_uc(session: AsyncSession = Depends(get_session)) -> ManageFeesUseCase:
    return ManageFeesUseCase(
        uow=SqlUnitOfWork(session),
        settings=SqlSettingsStore(session),
        fee_repo=SqlTechnicianFeeRepository(session),
        directory=SqlTechnicianDirectory(session),
    )


def get_settings_store(session: AsyncSession = Depends(get_session)) -> SqlSettingsStore:
    return SqlSettingsStore(session)


def get_technician_reports_uc(session: AsyncSession = Depends(get_session)) -> TechnicianReportsUseCase:
    return TechnicianReportsUseCase(
        performance_repo=SqlPerformanceLogRepository(session),
        directory=SqlTechnicianDirectory(session),
    )
