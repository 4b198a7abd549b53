from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from talent_quest.core.deps import require_admin
from talent_quest.db.session import get_async_session
from talent_quest.schemas.common import SuccessMessage
from talent_quest.schemas.registration import PerformanceType
from talent_quest.schemas.talent import (
    PerformanceCreate,
    PerformanceUpdate,
    TalentListResponse,
    TalentResponse,
    TalentSort,
)
from talent_quest.services.talent import TalentService

router = APIRouter(prefix="/talent-details", tags=["Talent Details"], dependencies=[Depends(require_admin)])


def get_talent_service(session: AsyncSession = Depends(get_async_session)) -> TalentService:
    return TalentService(session)


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=TalentListResponse,
    summary="List talents",
    description="Performances joined with their students, with search, filters, sorting and pagination.",
)
async def list_talents(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = Query(None, description="Matches title, student name or school"),
    performance_type: Optional[PerformanceType] = Query(None),
    school: Optional[str] = Query(None),
    sort: TalentSort = Query("created_at"),
    order: str = Query("desc", pattern="^(asc|desc)$"),
    service: TalentService = Depends(get_talent_service),
) -> TalentListResponse:
    """Paginated talent table."""
    return await service.list_talents(
        page=page,
        limit=limit,
        search=search,
        performance_type=performance_type.value if performance_type else None,
        school=school,
        sort=sort,
        order=order,
    )


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=TalentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create talent",
    description="Add a performance for an existing student (404 when the student does not exist).",
)
async def create_talent(
    payload: PerformanceCreate,
    service: TalentService = Depends(get_talent_service),
) -> TalentResponse:
    data = await service.create_talent(payload)
    return TalentResponse(data=data, message="Talent created successfully")


# PUBLIC_INTERFACE
@router.get("/{performance_id}", response_model=TalentResponse, summary="Get talent")
async def get_talent(performance_id: int, service: TalentService = Depends(get_talent_service)) -> TalentResponse:
    data = await service.get_talent(performance_id)
    return TalentResponse(data=data, message="Talent retrieved successfully")


# PUBLIC_INTERFACE
@router.put("/{performance_id}", response_model=TalentResponse, summary="Update talent")
async def update_talent(
    performance_id: int,
    payload: PerformanceUpdate,
    service: TalentService = Depends(get_talent_service),
) -> TalentResponse:
    """Apply a partial update to a performance."""
    data = await service.update_talent(performance_id, payload)
    return TalentResponse(data=data, message="Talent updated successfully")


# PUBLIC_INTERFACE
@router.delete("/{performance_id}", response_model=SuccessMessage, summary="Delete talent")
async def delete_talent(performance_id: int, service: TalentService = Depends(get_talent_service)) -> SuccessMessage:
    await service.delete_talent(performance_id)
    return SuccessMessage(message="Talent deleted successfully")
