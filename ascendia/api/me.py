"""
Profile API: identity, settings and account lifecycle.
"""

from fastapi import APIRouter, Depends

from ascendia.api.auth import get_current_user
from ascendia.api.deps import get_mission_service
from ascendia.models import CurrentUser
from ascendia.schema.request import UpdateProfileRequest
from ascendia.schema.response import (
    ArchetypesResponse,
    MeResponse,
    OkResponse,
    ProfileResponse,
    UserRead,
)
from ascendia.services.missions import MissionService

router = APIRouter(prefix="/v1", tags=["me"])


@router.get("/me", response_model=MeResponse)
async def get_me(
    user: CurrentUser = Depends(get_current_user),
    service: MissionService = Depends(get_mission_service),
):
    profile = await service.reconciled_profile(user)
    return MeResponse(user=UserRead(id=user.id, email=user.email), profile=profile)


@router.patch("/me", response_model=ProfileResponse)
async def update_me(
    body: UpdateProfileRequest,
    user: CurrentUser = Depends(get_current_user),
    service: MissionService = Depends(get_mission_service),
):
    profile = await service.update_profile(
        user, timezone_name=body.timezone, archetype_id=body.archetype_id
    )
    return ProfileResponse(profile=profile)


@router.delete("/me", response_model=OkResponse)
async def delete_me(
    user: CurrentUser = Depends(get_current_user),
    service: MissionService = Depends(get_mission_service),
):
    await service.delete_account(user)
    return OkResponse()


@router.get("/archetypes", response_model=ArchetypesResponse)
async def list_archetypes(
    user: CurrentUser = Depends(get_current_user),
    service: MissionService = Depends(get_mission_service),
):
    return ArchetypesResponse(archetypes=await service.archetypes.list_archetypes())
