from datetime import datetime, timedelta

import pytest
from sqlalchemy import func
from sqlalchemy.future import select

from quickbites.enums import CouponUsageStatus
from quickbites.exceptions import (
    ExpiredCouponException,
    InvalidCouponException,
    UsageLimitReachedException,
)
from quickbites.models import Coupon, CouponUsage
from quickbites.services.coupon_service import CouponService

USER = "user-1"


async def _add_coupon(db, code="WELCOME", category="percent", percentage=10.0, **kwargs):
    coupon = Coupon(code=code, category=category, percentage=percentage, **kwargs)
    db.add(coupon)
    await db.commit()
    return coupon


async def _usage_count(db, user_id, coupon_id):
    result = await db.execute(
        select(func.count(CouponUsage.id)).where(
            CouponUsage.user_id == user_id,
            CouponUsage.coupon_id == coupon_id,
        )
    )
    return result.scalar_one()


async def test_redeem_creates_selected_usage(db):
    coupon = await _add_coupon(db)

    usage, already_redeemed = await CouponService().redeem(USER, "WELCOME", db)

    assert not already_redeemed
    assert usage.coupon_id == coupon.id
    assert usage.status == CouponUsageStatus.REDEEMED
    assert usage.is_selected
    assert usage.coupon.code == "WELCOME"


async def test_redeeming_twice_returns_the_same_usage(db):
    coupon = await _add_coupon(db)
    service = CouponService()

    first, _ = await service.redeem(USER, "WELCOME", db)
    second, already_redeemed = await service.redeem(USER, "welcome", db)

    assert already_redeemed
    assert second.id == first.id
    assert await _usage_count(db, USER, coupon.id) == 1


async def test_unknown_code_is_invalid(db):
    with pytest.raises(InvalidCouponException):
        await CouponService().redeem(USER, "NOPE", db)


async def test_expired_coupon_is_rejected(db):
    await _add_coupon(db, ends_at=datetime.utcnow() - timedelta(days=1))

    with pytest.raises(ExpiredCouponException):
        await CouponService().redeem(USER, "WELCOME", db)


async def test_future_coupon_is_rejected(db):
    await _add_coupon(db, starts_at=datetime.utcnow() + timedelta(days=1))

    with pytest.raises(ExpiredCouponException):
        await CouponService().redeem(USER, "WELCOME", db)


async def test_inactive_coupon_is_rejected(db):
    await _add_coupon(db, is_active=False)

    with pytest.raises(ExpiredCouponException):
        await CouponService().redeem(USER, "WELCOME", db)


async def test_used_up_coupon_hits_usage_limit(db):
    coupon = await _add_coupon(db, max_usage=1)
    db.add(CouponUsage(user_id=USER, coupon_id=coupon.id, status=CouponUsageStatus.APPLIED, order_id=1))
    await db.commit()

    with pytest.raises(UsageLimitReachedException):
        await CouponService().redeem(USER, "WELCOME", db)

    # other users are unaffected
    usage, _ = await CouponService().redeem("user-2", "WELCOME", db)
    assert usage.status == CouponUsageStatus.REDEEMED


async def test_referral_reward_is_gated_by_remaining_uses(db):
    await _add_coupon(db, code="FRIEND0", category="referral", percentage=100.0, remaining_uses=0)
    reward = await _add_coupon(db, code="FRIEND2", category="referral", percentage=100.0, remaining_uses=2, max_usage=1)
    # already used once; the counter, not max_usage, decides
    db.add(CouponUsage(user_id=USER, coupon_id=reward.id, status=CouponUsageStatus.APPLIED, order_id=1))
    await db.commit()

    with pytest.raises(UsageLimitReachedException):
        await CouponService().redeem(USER, "FRIEND0", db)

    usage, already_redeemed = await CouponService().redeem(USER, "FRIEND2", db)
    assert not already_redeemed
    assert usage.coupon.remaining_uses == 2


async def test_selecting_one_usage_deselects_the_others(db):
    await _add_coupon(db, code="FIRST")
    await _add_coupon(db, code="SECOND")
    service = CouponService()

    first, _ = await service.redeem(USER, "FIRST", db)
    second, _ = await service.redeem(USER, "SECOND", db)

    active = await service.active_usage(USER, db)
    assert active.id == second.id

    selected = await service.select(USER, first.id, db)
    assert selected.is_selected

    active = await service.active_usage(USER, db)
    assert active.id == first.id

    usages = await service.list_usages(USER, db)
    assert sorted(u.id for u in usages if u.is_selected) == [first.id]


async def test_cannot_select_someone_elses_usage(db):
    await _add_coupon(db)
    usage, _ = await CouponService().redeem(USER, "WELCOME", db)

    with pytest.raises(InvalidCouponException):
        await CouponService().select("user-2", usage.id, db)


async def test_deselect_clears_active_usage(db):
    await _add_coupon(db)
    service = CouponService()
    await service.redeem(USER, "WELCOME", db)

    await service.deselect(USER, db)

    assert await service.active_usage(USER, db) is None
    assert len(await service.list_usages(USER, db)) == 1


async def test_mark_applied_consumes_usage_once(db):
    coupon = await _add_coupon(db, code="FRIEND", category="referral", percentage=100.0, remaining_uses=3)
    service = CouponService()
    usage, _ = await service.redeem(USER, "FRIEND", db)

    assert await service.mark_applied(usage.id, 10, db)
    await db.commit()
    assert not await service.mark_applied(usage.id, 10, db)
    await db.commit()

    await db.refresh(usage)
    await db.refresh(coupon)
    assert usage.status == CouponUsageStatus.APPLIED
    assert usage.order_id == 10
    assert not usage.is_selected
    assert usage.applied_at is not None
    assert coupon.remaining_uses == 2
    assert await service.active_usage(USER, db) is None
    assert await service.list_usages(USER, db) == []


async def test_applied_coupon_can_be_redeemed_again_within_max_usage(db):
    coupon = await _add_coupon(db, max_usage=2)
    service = CouponService()

    usage, _ = await service.redeem(USER, "WELCOME", db)
    await service.mark_applied(usage.id, 1, db)
    await db.commit()

    again, already_redeemed = await service.redeem(USER, "WELCOME", db)
    assert not already_redeemed
    assert again.id != usage.id

    await service.mark_applied(again.id, 2, db)
    await db.commit()

    with pytest.raises(UsageLimitReachedException):
        await service.redeem(USER, "WELCOME", db)
    assert await _usage_count(db, USER, coupon.id) == 2
