"""
Missions API: today's missions, completion and the 7-day rollup.
"""

from fastapi import APIRouter, Depends

from ascendia.api.auth import get_current_user
from ascendia.api.deps import get_mission_service
from ascendia.models import CurrentUser
from ascendia.schema.response import (
    CompleteMissionResponse,
    DayRollupRead,
    ProgressResponse,
    TodayMissionsResponse,
)
from ascendia.services.missions import MissionService

router = APIRouter(prefix="/v1", tags=["missions"])


@router.get("/missions/today", response_model=TodayMissionsResponse)
async def today_missions(
    user: CurrentUser = Depends(get_current_user),
    service: MissionService = Depends(get_mission_service),
):
    today = await service.today(user)
    return TodayMissionsResponse(
        date_key=today.date_key, missions=today.missions, profile=today.profile
    )


@router.post("/missions/{mission_id}/complete", response_model=CompleteMissionResponse)
async def complete_mission(
    mission_id: str,
    user: CurrentUser = Depends(get_current_user),
    service: MissionService = Depends(get_mission_service),
):
    result = await service.complete_mission(user, mission_id)
    return CompleteMissionResponse(profile=result.profile, missions=result.missions)


@router.get("/progress/last7", response_model=ProgressResponse)
async def last7(
    user: CurrentUser = Depends(get_current_user),
    service: MissionService = Depends(get_mission_service),
):
    rollup = await service.last7(user)
    return ProgressResponse(
        profile=rollup.profile,
        days=[
            DayRollupRead(date_key=d.date_key, total=d.total, completed=d.completed)
            for d in rollup.days
        ],
        totals=rollup.totals,
    )
