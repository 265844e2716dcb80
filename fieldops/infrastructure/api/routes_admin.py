"""Admin endpoints — settings, technician fees, bulk maintenance."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from fieldops.application.ports.settings_store import SettingsStore
from fieldops.application.use_cases.manage_fees import ManageFeesUseCase
from fieldops.application.use_cases.recalculate_bonuses import RecalculateBonusesUseCase
from fieldops.application.use_cases.reset_stale_assignments import ResetStaleAssignmentsUseCase
from fieldops.domain.policies.transitions import Actor
from fieldops.infrastructure.api.dependencies import (
    get_actor,
    get_manage_fees_uc,
    get_recalculate_bonuses_uc,
    get_reset_stale_uc,
    get_settings_store,
)
from fieldops.infrastructure.api.schemas import (
    ResetStaleRequest,
    SettingWriteRequest,
    TechnicianFeeRequest,
)

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/settings")
async def list_settings(store: SettingsStore = Depends(get_settings_store)):
    return await store.get_all()


@router.put("/settings/{key}")
async def write_setting(
    key: str,
    req: SettingWriteRequest,
    actor: Actor = Depends(get_actor),
    uc: ManageFeesUseCase = Depends(get_manage_fees_uc),
):
    await uc.set_setting(actor, key, req.value)
    return {"key": key, "value": req.value}


@router.get("/technician-fees/{technician_id}")
async def technician_fees(technician_id: int, uc: ManageFeesUseCase = Depends(get_manage_fees_uc)):
    return [
        {
            "ticket_type": f.ticket_type.value,
            "ticket_fee": str(f.ticket_fee),
            "transport_fee": str(f.transport_fee),
        }
        for f in await uc.technician_fees(technician_id)
    ]


@router.put("/technician-fees/{technician_id}")
async def write_technician_fee(
    technician_id: int,
    req: TechnicianFeeRequest,
    actor: Actor = Depends(get_actor),
    uc: ManageFeesUseCase = Depends(get_manage_fees_uc),
):
    fee = await uc.set_technician_fee(actor, technician_id, req.ticket_type, req.ticket_fee, req.transport_fee)
    return {
        "technician_id": fee.technician_id,
        "ticket_type": fee.ticket_type.value,
        "ticket_fee": str(fee.ticket_fee),
        "transport_fee": str(fee.transport_fee),
    }


@router.post("/recalculate-bonuses")
async def recalculate_bonuses(
    actor: Actor = Depends(get_actor),
    uc: RecalculateBonusesUseCase = Depends(get_recalculate_bonuses_uc),
):
    summary = await uc.execute(actor)
    return {
        "tickets_updated": summary.tickets_updated,
        "performance_logs_written": summary.performance_logs_written,
    }


@router.post("/reset-stale-assignments")
async def reset_stale_assignments(
    req: ResetStaleRequest,
    actor: Actor = Depends(get_actor),
    uc: ResetStaleAssignmentsUseCase = Depends(get_reset_stale_uc),
):
    return {"reset": await uc.execute(actor, req.max_age_hours)}
