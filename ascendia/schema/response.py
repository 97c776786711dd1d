"""
Response schemas for Ascendia API.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel

from ascendia.models import Archetype, Mission, Profile


class UserRead(BaseModel):
    id: str
    email: Optional[str] = None


class MeResponse(BaseModel):
    user: UserRead
    profile: Profile


class ProfileResponse(BaseModel):
    profile: Profile


class ArchetypesResponse(BaseModel):
    archetypes: List[Archetype]


class TodayMissionsResponse(BaseModel):
    date_key: str
    missions: List[Mission]
    profile: Profile


class CompleteMissionResponse(BaseModel):
    profile: Profile
    missions: List[Mission]


class DayRollupRead(BaseModel):
    date_key: str
    total: int
    completed: int


class ProgressResponse(BaseModel):
    profile: Profile
    days: List[DayRollupRead]
    totals: Dict[str, int]


class SweepError(BaseModel):
    user_id: str
    message: str


class SweepResponse(BaseModel):
    ok: bool
    processed: int
    reconciled: int
    errors: List[SweepError]


class OkResponse(BaseModel):
    ok: bool = True
