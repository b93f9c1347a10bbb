from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session

from db import session_execute, session_flush
from models.coupon import Coupon, CouponDTO, CouponUsage


class CouponRepository:

    @staticmethod
    async def get_active_by_code(code: str, session: Session | AsyncSession) -> CouponDTO | None:
        stmt = select(Coupon).where(Coupon.code == code.upper(), Coupon.is_active == True)
        coupon = await session_execute(stmt, session)
        coupon = coupon.scalar()
        if coupon is None:
            return None
        return CouponDTO.model_validate(coupon, from_attributes=True)

    @staticmethod
    async def increment_usage(coupon_id: int, session: Session | AsyncSession) -> None:
        # Column-level increment; never read-modify-write the counter in Python
        stmt = (update(Coupon)
                .where(Coupon.id == coupon_id)
                .values(usage_count=Coupon.usage_count + 1))
        await session_execute(stmt, session)

    @staticmethod
    async def create_usage(coupon_id: int, order_id: str, customer_email: str, discount_amount: int,
                           session: Session | AsyncSession) -> None:
        session.add(CouponUsage(
            coupon_id=coupon_id,
            order_id=order_id,
            customer_email=customer_email,
            discount_amount=discount_amount
        ))
        await session_flush(session)

    @staticmethod
    async def get_usage_by_order(order_id: str, session: Session | AsyncSession) -> list[CouponUsage]:
        stmt = select(CouponUsage).where(CouponUsage.order_id == order_id)
        result = await session_execute(stmt, session)
        return list(result.scalars().all())

    @staticmethod
    async def create(coupon_dto: CouponDTO, session: Session | AsyncSession) -> int:
        data = coupon_dto.model_dump(exclude_none=True)
        data['code'] = data['code'].upper()
        coupon = Coupon(**data)
        session.add(coupon)
        await session_flush(session)
        return coupon.id
