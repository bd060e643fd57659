"""Login endpoint for the local pseudo-identity."""

import logging

from fastapi import APIRouter, Depends

from app.core.dependencies import get_identity_provider
from app.core.security import LocalIdentityProvider
from app.schemas.auth import LoginRequest
from app.schemas.base import ResponseSchema, envelope

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=ResponseSchema)
async def login(
    credentials: LoginRequest,
    provider: LocalIdentityProvider = Depends(get_identity_provider),
):
    """Exchange the configured credentials for the fixed user id."""
    uid = provider.authenticate(credentials.username, credentials.password)
    logger.info("Local login for %s", uid)
    return envelope(uid=uid)
