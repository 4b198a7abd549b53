from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from talent_quest.core.deps import get_settings_dep, get_storage, require_admin
from talent_quest.core.settings import AppSettings
from talent_quest.db.session import get_async_session
from talent_quest.schemas.entries import (
    EntryResponse,
    SingleDetail,
    SingleDetailUpdate,
    SingleListItem,
    SingleTitleUpdate,
)
from talent_quest.services.singles import SingleService
from talent_quest.services.storage import LocalBucketStorage

router = APIRouter(
    prefix="/single-performances", tags=["Single Performances"], dependencies=[Depends(require_admin)]
)


class SingleListResponse(BaseModel):
    success: bool = True
    data: List[SingleListItem]


class SingleDetailResponse(BaseModel):
    success: bool = True
    data: SingleDetail


def get_single_service(
    session: AsyncSession = Depends(get_async_session),
    storage: LocalBucketStorage = Depends(get_storage),
    settings: AppSettings = Depends(get_settings_dep),
) -> SingleService:
    return SingleService(session, storage, settings)


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=SingleListResponse,
    summary="List single performances",
    description="Singles newest first with student name, school, performance type and duration.",
)
async def list_singles(service: SingleService = Depends(get_single_service)) -> SingleListResponse:
    return SingleListResponse(data=await service.list_singles())


# PUBLIC_INTERFACE
@router.put("", response_model=EntryResponse, summary="Rename single performance")
async def update_single_title(
    payload: SingleTitleUpdate,
    service: SingleService = Depends(get_single_service),
) -> EntryResponse:
    """Update a single's performance title; single_id is required."""
    if not payload.single_id:
        raise HTTPException(status_code=400, detail="single_id is required")
    single = await service.update_title(payload.single_id, payload.performance_title)
    return EntryResponse(message="Single performance updated", data=single.model_dump(mode="json"))


# PUBLIC_INTERFACE
@router.delete(
    "",
    response_model=EntryResponse,
    summary="Delete single performance (query)",
    description="Cascade delete by ?single_id=; removes stored files and every linked row.",
)
async def delete_single_by_query(
    single_id: Optional[int] = Query(None),
    service: SingleService = Depends(get_single_service),
) -> EntryResponse:
    if not single_id:
        raise HTTPException(status_code=400, detail="single_id is required")
    summary = await service.delete_single(single_id)
    return EntryResponse(message="Single performance deleted successfully", data=summary)


# PUBLIC_INTERFACE
@router.get("/{single_id}", response_model=SingleDetailResponse, summary="Get single performance")
async def get_single(single_id: int, service: SingleService = Depends(get_single_service)) -> SingleDetailResponse:
    """Single with student, performance, requirements, health, consents and endorsement."""
    return SingleDetailResponse(data=await service.get_detail(single_id))


# PUBLIC_INTERFACE
@router.put("/{single_id}", response_model=SingleDetailResponse, summary="Update single performance")
async def update_single(
    single_id: int,
    payload: SingleDetailUpdate,
    service: SingleService = Depends(get_single_service),
) -> SingleDetailResponse:
    """Partial update of the single, student and performance sections."""
    return SingleDetailResponse(data=await service.update_detail(single_id, payload))


# PUBLIC_INTERFACE
@router.delete("/{single_id}", response_model=EntryResponse, summary="Delete single performance")
async def delete_single(single_id: int, service: SingleService = Depends(get_single_service)) -> EntryResponse:
    """
    Remove stored files (attachments and QR), then requirements, health, consents,
    endorsements, performances, QR rows, the single and its student.
    """
    summary = await service.delete_single(single_id)
    return EntryResponse(message="Single performance deleted successfully", data=summary)
