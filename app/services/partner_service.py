"""Couples relationships between users."""

import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.partner import Partner


logger = logging.getLogger("app.partners")


class PartnerService:
    @staticmethod
    async def get_partner(db: AsyncSession, user_id: str, partner_id: str) -> Optional[Partner]:
        query = select(Partner).where(
            Partner.user_id == user_id,
            Partner.partner_id == partner_id,
            Partner.is_active.is_(True),
        )
        return (await db.execute(query)).scalar_one_or_none()

    @staticmethod
    async def create_partner(db: AsyncSession, user_id: str, partner_id: str) -> Partner:
        partner = Partner(user_id=user_id, partner_id=partner_id, is_active=True)
        db.add(partner)
        await db.commit()
        await db.refresh(partner)

        logger.info("Partnership created: user_id=%s, partner_id=%s", user_id, partner_id)
        return partner

    @staticmethod
    async def list_partners(db: AsyncSession, user_id: str) -> List[Partner]:
        query = (
            select(Partner)
            .where(Partner.user_id == user_id, Partner.is_active.is_(True))
            .order_by(Partner.id)
        )
        return list((await db.execute(query)).scalars().all())
