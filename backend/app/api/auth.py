from fastapi import APIRouter, Depends, HTTPException, Request, Header
from typing import Optional
import hmac
import logging
import os

from app.dependencies import get_transfer_service
from app.schemas.auth import SessionResponse, RefreshRequest, RefreshResponse
from app.schemas.user import UserProfile
from app.services.rate_limit import limiter
from app.services.token_service import create_jwt_token_pair, refresh_access_token
from app.services.transfer_service import TransferService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

AUTH_PROVIDER_SECRET = os.getenv("AUTH_PROVIDER_SECRET")
ADMIN_UIDS = {u.strip() for u in os.getenv("ADMIN_UIDS", "").split(",") if u.strip()}


def _default_photo_url(uid: str) -> str:
    return f"https://picsum.photos/seed/{uid}/100/100"


@router.post("/session", response_model=SessionResponse)
@limiter.limit("20/minute")
async def create_session(
    request: Request,
    profile: UserProfile,
    x_provider_secret: Optional[str] = Header(default=None),
    service: TransferService = Depends(get_transfer_service),
):
    """Called once the identity provider has authenticated the user.

    Creates the ledger user on first sign-in (idempotent afterwards) and
    issues the bearer tokens used by the rest of the API.
    """
    if AUTH_PROVIDER_SECRET and not hmac.compare_digest(x_provider_secret or "", AUTH_PROVIDER_SECRET):
        raise HTTPException(status_code=401, detail="Invalid identity provider credentials.")
    if not profile.photo_url:
        profile = profile.model_copy(update={"photo_url": _default_photo_url(profile.uid)})

    user = await service.add_user(profile)
    role = "admin" if user.uid in ADMIN_UIDS else user.role
    user = user.model_copy(update={"role": role})
    tokens = create_jwt_token_pair({"uid": user.uid, "email": user.email, "role": role})
    logger.info("Session issued for %s", user.uid)
    return SessionResponse(user=user, **tokens)


@router.post("/refresh", response_model=RefreshResponse)
@limiter.limit("10/minute; 50/hour")
async def refresh(request: Request, data: RefreshRequest):
    """Refresh access token using refresh token."""
    new_access_token = refresh_access_token(data.refresh_token)
    if not new_access_token:
        raise HTTPException(status_code=401, detail="Invalid or expired refresh token")
    return RefreshResponse(access_token=new_access_token)
