# app/core/dependencies.py
import logging

from fastapi import Depends, Request

from app.core.config import settings
from app.core.security import LocalIdentityProvider
from app.domains.ai.service import TaskExtractionService
from app.domains.project.service import ProjectService
from app.domains.task.service import TaskService
from app.domains.team.service import TeamService
from app.persistence.base import DocumentStore

logger = logging.getLogger(__name__)


def get_document_store(request: Request) -> DocumentStore:
    """Return the document store created in the application lifespan."""
    return request.app.state.document_store


def get_task_extractor() -> TaskExtractionService:
    return TaskExtractionService(settings)


def get_identity_provider() -> LocalIdentityProvider:
    return LocalIdentityProvider(settings)


def get_task_service(store: DocumentStore = Depends(get_document_store)) -> TaskService:
    return TaskService(store)


def get_project_service(
    store: DocumentStore = Depends(get_document_store),
    extractor: TaskExtractionService = Depends(get_task_extractor),
) -> ProjectService:
    return ProjectService(store, extractor)


def get_team_service(store: DocumentStore = Depends(get_document_store)) -> TeamService:
    return TeamService(store)
