"""
Request schemas for Ascendia API.
"""

from typing import Optional

from pydantic import AliasChoices, BaseModel, Field


class UpdateProfileRequest(BaseModel):
    timezone: Optional[str] = None
    # Mobile clients send camelCase.
    archetype_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("archetype_id", "archetypeId")
    )
