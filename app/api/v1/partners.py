"""Partner (couples relationship) endpoints."""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_current_user
from app.chat.schemas import PartnerCreate, PartnerResponse
from app.core import messages
from app.core.database import get_db
from app.models.user import User
from app.services.partner_service import PartnerService
from app.services.user_service import UserService


router = APIRouter(prefix="/partners", tags=["partners"])


@router.get("", response_model=List[PartnerResponse])
async def list_partners(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return await PartnerService.list_partners(db, current_user.id)


@router.post("", response_model=PartnerResponse, status_code=status.HTTP_201_CREATED)
async def create_partner(
    payload: PartnerCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if payload.partner_id == current_user.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=messages.PARTNER_SELF,
        )

    partner = await UserService.get_user(db, payload.partner_id)
    if not partner:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=messages.PARTNER_NOT_FOUND,
        )

    if await PartnerService.get_partner(db, current_user.id, payload.partner_id):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=messages.PARTNER_EXISTS,
        )

    return await PartnerService.create_partner(db, current_user.id, payload.partner_id)
