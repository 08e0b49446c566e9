from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from ..core.dependencies import get_coupon_service, get_current_user_id, get_db
from ..schemas.coupon import CouponUsageResponse, RedeemCouponRequest, RedeemCouponResponse
from ..services.coupon_service import CouponService

router = APIRouter()


@router.get("/", response_model=List[CouponUsageResponse])
async def list_coupons(
    user_id: str = Depends(get_current_user_id),
    coupons: CouponService = Depends(get_coupon_service),
    db: AsyncSession = Depends(get_db)
):
    """Coupons the user holds and has not used yet"""
    return await coupons.list_usages(user_id, db)


@router.post("/redeem", response_model=RedeemCouponResponse)
async def redeem_coupon(
    request: RedeemCouponRequest,
    user_id: str = Depends(get_current_user_id),
    coupons: CouponService = Depends(get_coupon_service),
    db: AsyncSession = Depends(get_db)
):
    """
    **Redeem Coupon Code**

    Adds a coupon to the user's wallet and selects it for the next checkout.

    **Returns:**
    - **usage**: the coupon usage row
    - **already_redeemed**: true when the user already held this coupon; the
      existing row is returned unchanged

    **Errors:**
    - **INVALID_COUPON**: unknown code
    - **EXPIRED_COUPON**: inactive or outside its validity window
    - **USAGE_LIMIT_REACHED**: the user (or the referral reward) has no uses left
    """
    usage, already_redeemed = await coupons.redeem(user_id, request.code, db)
    return RedeemCouponResponse(
        usage=CouponUsageResponse.model_validate(usage),
        already_redeemed=already_redeemed,
    )


@router.post("/{usage_id}/select", response_model=CouponUsageResponse)
async def select_coupon(
    usage_id: int,
    user_id: str = Depends(get_current_user_id),
    coupons: CouponService = Depends(get_coupon_service),
    db: AsyncSession = Depends(get_db)
):
    """Use this coupon at checkout; any other selected coupon is deselected"""
    return await coupons.select(user_id, usage_id, db)


@router.delete("/selection", status_code=status.HTTP_204_NO_CONTENT)
async def clear_selection(
    user_id: str = Depends(get_current_user_id),
    coupons: CouponService = Depends(get_coupon_service),
    db: AsyncSession = Depends(get_db)
):
    """Check out without a coupon"""
    await coupons.deselect(user_id, db)
