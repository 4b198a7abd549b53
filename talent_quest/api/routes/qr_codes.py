from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from talent_quest.core.deps import get_settings_dep, get_storage, require_admin
from talent_quest.core.settings import AppSettings
from talent_quest.db.session import get_async_session
from talent_quest.schemas.passes import (
    GenerateRequest,
    GenerateResponse,
    GuestPassResponse,
    PassHolderPage,
    PassStatus,
)
from talent_quest.services.qr import QrPassService
from talent_quest.services.realtime import broadcast_manager
from talent_quest.services.storage import LocalBucketStorage

router = APIRouter(
    prefix="/qr-code-management", tags=["QR Code Management"], dependencies=[Depends(require_admin)]
)


def get_pass_service(
    session: AsyncSession = Depends(get_async_session),
    storage: LocalBucketStorage = Depends(get_storage),
    settings: AppSettings = Depends(get_settings_dep),
) -> QrPassService:
    return QrPassService(session, storage, settings)


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=PassHolderPage,
    summary="List pass holders",
    description="Guests, singles and groups in one list with their latest QR pass, sorted by name.",
)
async def list_pass_holders(
    q: Optional[str] = Query(None, description="Filter by name or email"),
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100, alias="pageSize"),
    service: QrPassService = Depends(get_pass_service),
) -> PassHolderPage:
    return await service.list_holders(q, page, page_size)


# PUBLIC_INTERFACE
@router.post(
    "/generate",
    response_model=GenerateResponse,
    summary="Generate QR passes",
    description=(
        "Render and store a new pass for each item, replacing any previous pass file and row. "
        "Per-item failures are reported in results without failing the batch."
    ),
)
async def generate_passes(
    payload: GenerateRequest,
    service: QrPassService = Depends(get_pass_service),
) -> GenerateResponse:
    """(Re)issue passes; legacy userIds are treated as guest ids."""
    items = payload.resolved_items()
    if not items:
        raise HTTPException(status_code=400, detail="No items provided")
    results = await service.generate_many(items)
    generated = [{"type": r.type, "id": r.id} for r in results if r.url]
    if generated:
        await broadcast_manager.publish("qr.generated", {"items": generated})
    return GenerateResponse(results=results)


# PUBLIC_INTERFACE
@router.get(
    "/user/{user_id}",
    response_model=GuestPassResponse,
    summary="Get guest pass",
)
async def get_guest_pass(user_id: int, service: QrPassService = Depends(get_pass_service)) -> GuestPassResponse:
    """A guest with their latest QR pass; 404 when the guest does not exist."""
    return GuestPassResponse(user=await service.guest_holder(user_id))


# PUBLIC_INTERFACE
@router.get(
    "/users-status",
    response_model=PassStatus,
    summary="Guest pass coverage",
)
async def guest_pass_status(service: QrPassService = Depends(get_pass_service)) -> PassStatus:
    """Number of guests with and without a QR pass."""
    return await service.guest_status()
