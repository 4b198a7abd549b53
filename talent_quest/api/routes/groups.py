from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from talent_quest.core.deps import get_settings_dep, get_storage, require_admin
from talent_quest.core.settings import AppSettings
from talent_quest.db.session import get_async_session
from talent_quest.schemas.entries import EntryResponse, GroupListResponse, GroupMemberUpdate, GroupUpdate
from talent_quest.services.groups import GroupService
from talent_quest.services.storage import LocalBucketStorage

router = APIRouter(
    prefix="/group-performances", tags=["Group Performances"], dependencies=[Depends(require_admin)]
)


def get_group_service(
    session: AsyncSession = Depends(get_async_session),
    storage: LocalBucketStorage = Depends(get_storage),
    settings: AppSettings = Depends(get_settings_dep),
) -> GroupService:
    return GroupService(session, storage, settings)


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=GroupListResponse,
    summary="List group performances",
    description="Groups newest first, each with its members merged with their records.",
)
async def list_groups(service: GroupService = Depends(get_group_service)) -> GroupListResponse:
    return GroupListResponse(groups=await service.list_groups())


# PUBLIC_INTERFACE
@router.put(
    "",
    response_model=EntryResponse,
    summary="Update group",
    description="Update name, performance type (Dance/Drama/Musical accepted) or description.",
)
async def update_group(payload: GroupUpdate, service: GroupService = Depends(get_group_service)) -> EntryResponse:
    group = await service.update_group(payload)
    return EntryResponse(message="Group updated successfully", data=group)


# PUBLIC_INTERFACE
@router.delete("", response_model=EntryResponse, summary="Delete group")
async def delete_group(
    group_id: Optional[int] = Query(None),
    service: GroupService = Depends(get_group_service),
) -> EntryResponse:
    """Delete a group's passes and members, then the group."""
    if not group_id:
        raise HTTPException(status_code=400, detail="Group ID is required")
    await service.delete_group(group_id)
    return EntryResponse(message="Group deleted successfully")


# PUBLIC_INTERFACE
@router.put("/member", response_model=EntryResponse, summary="Update group member")
async def update_member(
    payload: GroupMemberUpdate,
    service: GroupService = Depends(get_group_service),
) -> EntryResponse:
    """Edit a member's name, role (course/year), email or contact number."""
    member = await service.update_member(payload)
    return EntryResponse(message="Member updated successfully", data=member)
