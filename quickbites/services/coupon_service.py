import logging
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import and_, func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from ..enums import CouponUsageStatus
from ..exceptions import (
    ExpiredCouponException,
    InvalidCouponException,
    UsageLimitReachedException,
)
from ..models import Coupon, CouponUsage


logger = logging.getLogger(__name__)

OPEN_STATUSES = (CouponUsageStatus.AVAILABLE, CouponUsageStatus.REDEEMED)


class CouponService:
    async def get_coupon_by_code(self, code: str, db: AsyncSession) -> Optional[Coupon]:
        query = select(Coupon).where(func.upper(Coupon.code) == code.strip().upper())
        result = await db.execute(query)
        return result.scalars().first()

    async def get_open_usage(self, user_id: str, coupon_id: int, db: AsyncSession) -> Optional[CouponUsage]:
        query = select(CouponUsage).where(
            and_(
                CouponUsage.user_id == user_id,
                CouponUsage.coupon_id == coupon_id,
                CouponUsage.status.in_(OPEN_STATUSES),
            )
        )
        result = await db.execute(query)
        return result.scalars().first()

    async def count_applied(self, user_id: str, coupon_id: int, db: AsyncSession) -> int:
        query = select(func.count(CouponUsage.id)).where(
            and_(
                CouponUsage.user_id == user_id,
                CouponUsage.coupon_id == coupon_id,
                CouponUsage.status == CouponUsageStatus.APPLIED,
            )
        )
        result = await db.execute(query)
        return result.scalar_one()

    def check_validity(self, coupon: Coupon, now: Optional[datetime] = None) -> None:
        now = now or datetime.utcnow()
        if not coupon.is_active:
            raise ExpiredCouponException(f"Coupon {coupon.code} is no longer active")
        if coupon.starts_at and coupon.starts_at > now:
            raise ExpiredCouponException(f"Coupon {coupon.code} is not valid yet")
        if coupon.ends_at and coupon.ends_at < now:
            raise ExpiredCouponException(f"Coupon {coupon.code} has expired")

    async def redeem(
        self,
        user_id: str,
        code: str,
        db: AsyncSession,
        now: Optional[datetime] = None,
    ) -> Tuple[CouponUsage, bool]:
        """
        Redeem a coupon code for a user.

        Returns ``(usage, already_redeemed)``. Redeeming a code the user still holds
        returns the existing usage unchanged. A fresh redemption becomes the user's
        selected coupon.
        """
        coupon = await self.get_coupon_by_code(code, db)
        if not coupon:
            raise InvalidCouponException(f"Coupon {code} not found")

        existing = await self.get_open_usage(user_id, coupon.id, db)
        if existing:
            return existing, True

        self.check_validity(coupon, now)

        if coupon.remaining_uses is not None:
            if coupon.remaining_uses <= 0:
                raise UsageLimitReachedException(f"Coupon {coupon.code} has no uses left")
        elif await self.count_applied(user_id, coupon.id, db) >= (coupon.max_usage or 0):
            raise UsageLimitReachedException(f"You have already used coupon {coupon.code}")

        await self._clear_selection(user_id, db)
        usage = CouponUsage(
            user_id=user_id,
            coupon_id=coupon.id,
            status=CouponUsageStatus.REDEEMED,
            is_selected=True,
        )
        db.add(usage)

        try:
            await db.commit()
        except IntegrityError:
            # a concurrent redemption created the open row first
            await db.rollback()
            existing = await self.get_open_usage(user_id, coupon.id, db)
            if existing is None:
                raise
            return existing, True

        await db.refresh(usage)
        logger.info("User %s redeemed coupon %s", user_id, coupon.code)
        return usage, False

    async def list_usages(self, user_id: str, db: AsyncSession) -> List[CouponUsage]:
        query = (
            select(CouponUsage)
            .where(
                and_(
                    CouponUsage.user_id == user_id,
                    CouponUsage.status.in_(OPEN_STATUSES),
                )
            )
            .order_by(CouponUsage.created_at.desc())
        )
        result = await db.execute(query)
        return list(result.unique().scalars().all())

    async def _clear_selection(self, user_id: str, db: AsyncSession, keep_id: Optional[int] = None) -> None:
        conditions = [CouponUsage.user_id == user_id, CouponUsage.is_selected.is_(True)]
        if keep_id is not None:
            conditions.append(CouponUsage.id != keep_id)

        await db.execute(
            update(CouponUsage)
            .where(and_(*conditions))
            .values(is_selected=False)
        )

    async def select(self, user_id: str, usage_id: int, db: AsyncSession) -> CouponUsage:
        """Make ``usage_id`` the one coupon used at checkout"""
        usage = await db.get(CouponUsage, usage_id)
        if not usage or usage.user_id != user_id or usage.status not in OPEN_STATUSES:
            raise InvalidCouponException(f"Coupon usage {usage_id} not found")

        self.check_validity(usage.coupon)

        await self._clear_selection(user_id, db, keep_id=usage.id)
        usage.is_selected = True
        await db.commit()
        await db.refresh(usage)
        return usage

    async def deselect(self, user_id: str, db: AsyncSession) -> None:
        await self._clear_selection(user_id, db)
        await db.commit()

    async def active_usage(self, user_id: str, db: AsyncSession) -> Optional[CouponUsage]:
        query = select(CouponUsage).where(
            and_(
                CouponUsage.user_id == user_id,
                CouponUsage.is_selected.is_(True),
                CouponUsage.status.in_(OPEN_STATUSES),
            )
        )
        result = await db.execute(query)
        return result.scalars().first()

    async def mark_applied(self, usage_id: int, order_id: int, db: AsyncSession) -> bool:
        """
        Consume a usage for a paid order. Does not commit; runs inside the caller's
        transaction. Returns False when the usage was already consumed.
        """
        result = await db.execute(
            update(CouponUsage)
            .where(and_(CouponUsage.id == usage_id, CouponUsage.status.in_(OPEN_STATUSES)))
            .values(
                status=CouponUsageStatus.APPLIED,
                is_selected=False,
                order_id=order_id,
                applied_at=datetime.utcnow(),
            )
        )
        if result.rowcount != 1:
            return False

        usage = await db.get(CouponUsage, usage_id)
        await db.execute(
            update(Coupon)
            .where(and_(Coupon.id == usage.coupon_id, Coupon.remaining_uses > 0))
            .values(remaining_uses=Coupon.remaining_uses - 1)
        )
        return True
