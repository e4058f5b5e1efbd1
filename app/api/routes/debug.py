"""
api/routes/debug.py
-------------------
Debug endpoints over the caller's tenant history.

GET    /api/v2/debug/state  — Full history plus global store statistics
DELETE /api/v2/debug/state  — Clear the caller's history
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from app.dependencies import get_tenant_id, get_tenant_store
from app.schemas.chat import (
    ClearStateRead,
    DebugStateRead,
    StoreStatsRead,
    TenantSummary,
)
from app.services.tenant_store import TenantStore

router = APIRouter(prefix="/api/v2/debug", tags=["Debug"])


@router.get("/state", response_model=DebugStateRead, summary="Inspect tenant history")
async def get_state(
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    store: Annotated[TenantStore, Depends(get_tenant_store)],
) -> DebugStateRead:
    history = store.snapshot(tenant_id)
    stats = store.global_stats()
    return DebugStateRead(
        tenant=TenantSummary(
            id=history.tenant_id,
            message_count=history.message_count,
            created_at=history.created_at,
            last_activity_at=history.last_activity_at,
        ),
        messages=list(history.messages),
        global_stats=StoreStatsRead(
            tenant_count=stats.tenant_count,
            total_message_count=stats.total_message_count,
        ),
    )


@router.delete("/state", response_model=ClearStateRead, summary="Clear tenant history")
async def clear_state(
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    store: Annotated[TenantStore, Depends(get_tenant_store)],
) -> ClearStateRead:
    return ClearStateRead(cleared=store.clear(tenant_id), tenant_id=tenant_id)
