from fastapi import APIRouter, Depends, HTTPException

from app.dependencies import get_transfer_service
from app.middlewares.rbac import get_current_claims
from app.schemas.transaction import UserHistory
from app.schemas.user import UserRead
from app.services.transfer_service import TransferService

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserRead)
async def get_me(claims: dict = Depends(get_current_claims), service: TransferService = Depends(get_transfer_service)):
    user = await service.get_user(claims["uid"])
    if not user:
        raise HTTPException(status_code=404, detail="User not found.")
    return user


@router.get("/me/history", response_model=UserHistory)
async def get_my_history(claims: dict = Depends(get_current_claims), service: TransferService = Depends(get_transfer_service)):
    return await service.get_history(claims["uid"])
