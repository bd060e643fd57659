"""Team API controller."""

import logging

from fastapi import APIRouter, Depends, Query

from app.core.dependencies import get_team_service
from app.domains.team.service import TeamService
from app.exceptions.base import ValidationError
from app.schemas.base import ResponseSchema, envelope
from app.schemas.team import TeamSave

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/team", tags=["team"])


@router.get("", response_model=ResponseSchema)
async def get_team(
    uid: str | None = Query(None),
    service: TeamService = Depends(get_team_service),
):
    """Get the team data of a user; ``teamData`` is null until first saved."""
    if not uid:
        raise ValidationError("uid is required")

    return envelope(teamData=await service.get_team(uid))


@router.post("", response_model=ResponseSchema)
async def save_team(
    body: TeamSave,
    service: TeamService = Depends(get_team_service),
):
    """Save or merge a user's team data."""
    if not body.uid or body.team_data is None:
        raise ValidationError("uid and teamData are required")

    await service.save_team(body.uid, body.team_data)
    return envelope()
