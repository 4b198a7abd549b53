from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from talent_quest.core.deps import get_mailer, get_settings_dep, get_storage, require_admin
from talent_quest.core.settings import AppSettings
from talent_quest.db.session import get_async_session
from talent_quest.schemas.common import SuccessMessage
from talent_quest.schemas.guests import (
    GuestListResponse,
    GuestRead,
    GuestRegistration,
    GuestRegistrationResult,
    GuestStats,
    GuestUpdate,
)
from talent_quest.services.guests import GuestService
from talent_quest.services.mailer import SmtpMailer
from talent_quest.services.storage import LocalBucketStorage

router = APIRouter(prefix="/guests", tags=["Guests"])


def get_guest_service(
    session: AsyncSession = Depends(get_async_session),
    storage: LocalBucketStorage = Depends(get_storage),
    settings: AppSettings = Depends(get_settings_dep),
    mailer: SmtpMailer = Depends(get_mailer),
) -> GuestService:
    return GuestService(session, storage, settings, mailer)


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=GuestRegistrationResult,
    status_code=status.HTTP_201_CREATED,
    summary="Register guest",
    description="Public guest registration. Issues and emails a guest QR pass unless issuePass is false.",
)
async def register_guest(
    payload: GuestRegistration,
    service: GuestService = Depends(get_guest_service),
) -> GuestRegistrationResult:
    """Register a guest attendee."""
    return await service.register(payload)


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=GuestListResponse,
    summary="List guests",
    dependencies=[Depends(require_admin)],
)
async def list_guests(
    q: Optional[str] = Query(None, description="Search by name or email"),
    gender: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    service: GuestService = Depends(get_guest_service),
) -> GuestListResponse:
    """Guests newest first with their latest pass URL."""
    return await service.list_guests(q, gender, page, limit)


# PUBLIC_INTERFACE
@router.get(
    "/stats",
    response_model=GuestStats,
    summary="Guest statistics",
    dependencies=[Depends(require_admin)],
)
async def guest_stats(service: GuestService = Depends(get_guest_service)) -> GuestStats:
    return await service.stats()


# PUBLIC_INTERFACE
@router.get(
    "/{guest_id}",
    response_model=GuestRead,
    summary="Get guest",
    dependencies=[Depends(require_admin)],
)
async def get_guest(guest_id: int, service: GuestService = Depends(get_guest_service)) -> GuestRead:
    return await service.get_guest(guest_id)


# PUBLIC_INTERFACE
@router.put(
    "/{guest_id}",
    response_model=GuestRead,
    summary="Update guest",
    dependencies=[Depends(require_admin)],
)
async def update_guest(
    guest_id: int,
    payload: GuestUpdate,
    service: GuestService = Depends(get_guest_service),
) -> GuestRead:
    """Apply a partial update; omitted fields are unchanged."""
    return await service.update_guest(guest_id, payload)


# PUBLIC_INTERFACE
@router.delete(
    "/{guest_id}",
    response_model=SuccessMessage,
    summary="Delete guest",
    description="Delete a guest together with their QR passes and check-in history.",
    dependencies=[Depends(require_admin)],
)
async def delete_guest(guest_id: int, service: GuestService = Depends(get_guest_service)) -> SuccessMessage:
    await service.delete_guest(guest_id)
    return SuccessMessage(message="Guest deleted successfully")
