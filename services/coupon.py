import logging
from datetime import date
from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session

from db import session_scope
from enums.coupon_type import CouponType
from models.coupon import CouponDTO, CouponValidationDTO
from repositories.coupon import CouponRepository

logger = logging.getLogger(__name__)


class CouponService:

    @staticmethod
    async def validate(code: str, subtotal: int, session: AsyncSession | None = None,
                       today: date | None = None) -> CouponValidationDTO:
        """
        Server-side coupon check shared by checkout and the standalone validation endpoint.

        Checks, in order: active code exists, date window, usage limit, minimum order amount.
        An invalid coupon is not an error: the result carries valid=False, discount=0 and a reason.
        """
        today = today or date.today()
        async with session_scope(session) as scoped:
            coupon = await CouponRepository.get_active_by_code(code, scoped)

        if coupon is None:
            return CouponValidationDTO(valid=False, reason="Invalid or inactive coupon code")
        if coupon.start_date and coupon.start_date > today:
            return CouponValidationDTO(valid=False, reason="Coupon is not active yet", coupon=coupon)
        if coupon.end_date and coupon.end_date < today:
            return CouponValidationDTO(valid=False, reason="Coupon has expired", coupon=coupon)
        if coupon.usage_limit and coupon.usage_count >= coupon.usage_limit:
            return CouponValidationDTO(valid=False, reason="Coupon usage limit reached", coupon=coupon)
        if subtotal < (coupon.min_order_amount or 0):
            return CouponValidationDTO(
                valid=False,
                reason=f"Minimum order amount is {coupon.min_order_amount}",
                coupon=coupon
            )

        discount = CouponService.calculate_discount(coupon, subtotal)
        return CouponValidationDTO(valid=True, discount=discount, coupon=coupon)

    @staticmethod
    def calculate_discount(coupon: CouponDTO, subtotal: int) -> int:
        """
        Percentage coupons round half-up; both types are capped by max_discount_amount
        (when set) and never exceed the subtotal.
        """
        if coupon.type == CouponType.PERCENTAGE:
            raw = Decimal(subtotal) * Decimal(coupon.value) / Decimal(100)
            discount = int(raw.quantize(Decimal('1'), rounding=ROUND_HALF_UP))
        else:
            discount = coupon.value

        if coupon.max_discount_amount and discount > coupon.max_discount_amount:
            discount = coupon.max_discount_amount

        return max(0, min(discount, subtotal))

    @staticmethod
    async def record_usage(coupon: CouponDTO, order_id: str, customer_email: str, discount: int,
                           session: AsyncSession | Session) -> None:
        await CouponRepository.increment_usage(coupon.id, session)
        await CouponRepository.create_usage(coupon.id, order_id, customer_email, discount, session)
        logger.info(f"Coupon {coupon.code} applied to order {order_id} (discount {discount})")
