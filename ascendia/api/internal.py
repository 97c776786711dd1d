"""
Internal API for schedulers: reconciliation sweeps.
Answers 404 unless CRON_SECRET is configured and sent as `x-cron-secret`.
"""

import hmac
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException

from ascendia.api.deps import get_mission_service
from ascendia.config import settings
from ascendia.schema.response import ProfileResponse, SweepResponse
from ascendia.services.missions import MissionService

router = APIRouter(prefix="/internal", tags=["internal"])


def require_cron_secret(x_cron_secret: Optional[str] = Header(default=None)) -> None:
    expected = settings.cron_secret
    if not expected or not x_cron_secret or not hmac.compare_digest(x_cron_secret, expected):
        raise HTTPException(status_code=404, detail="Not found")


@router.post("/reconcile", response_model=SweepResponse, dependencies=[Depends(require_cron_secret)])
async def reconcile_all(service: MissionService = Depends(get_mission_service)):
    result = await service.reconcile_all(page_size=settings.sweep_page_size)
    return SweepResponse(**result.to_dict())


@router.post(
    "/reconcile/{user_id}",
    response_model=ProfileResponse,
    dependencies=[Depends(require_cron_secret)],
)
async def reconcile_user(user_id: str, service: MissionService = Depends(get_mission_service)):
    profile = await service.reconcile_user(user_id)
    return ProfileResponse(profile=profile)
