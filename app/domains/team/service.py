"""Team service layer: one team document per user."""

import logging
from typing import Any

from app.persistence.base import SERVER_TIMESTAMP, TEAMS, DocumentStore
from app.schemas.team import TeamData

logger = logging.getLogger(__name__)


class TeamService:
    """Reads and merges the team document keyed by the owner's uid."""

    def __init__(self, store: DocumentStore):
        self.store = store

    async def get_team(self, uid: str) -> dict[str, Any] | None:
        """The stored team document, or None when the user has none yet."""
        return await self.store.get(TEAMS, uid)

    async def save_team(self, uid: str, team: TeamData) -> None:
        """Merge the fields that were sent into the user's team document."""
        fields = team.model_dump(mode="json", by_alias=True, include=team.model_fields_set - {"updated_at"})
        await self.store.set(TEAMS, uid, {**fields, "uid": uid, "updated_at": SERVER_TIMESTAMP})
        logger.info("Saved team data for %s (%d fields)", uid, len(fields))
