from datetime import datetime, date

from pydantic import BaseModel
from sqlalchemy import Column, Integer, String, Boolean, Date, DateTime, ForeignKey, func, Enum as SQLEnum, Index

from enums.coupon_type import CouponType
from models.base import Base


class Coupon(Base):
    __tablename__ = 'coupons'

    id = Column(Integer, primary_key=True)
    code = Column(String(50), unique=True, nullable=False)  # Stored upper-case
    type = Column(SQLEnum(CouponType), nullable=False)
    value = Column(Integer, nullable=False)
    min_order_amount = Column(Integer, nullable=False, default=0)
    max_discount_amount = Column(Integer, nullable=True)
    usage_limit = Column(Integer, nullable=True)  # None = unlimited
    usage_count = Column(Integer, nullable=False, default=0)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=func.now())

    __table_args__ = (
        Index('ix_coupons_active', 'is_active'),
    )


class CouponUsage(Base):
    __tablename__ = 'coupon_usage'

    id = Column(Integer, primary_key=True)
    coupon_id = Column(Integer, ForeignKey('coupons.id', ondelete='CASCADE'), nullable=False)
    order_id = Column(String(50), nullable=False)
    customer_email = Column(String(254), nullable=False)
    discount_amount = Column(Integer, nullable=False)
    used_at = Column(DateTime, default=func.now())


class CouponDTO(BaseModel):
    id: int | None = None
    code: str | None = None
    type: CouponType | None = None
    value: int | None = None
    min_order_amount: int | None = 0
    max_discount_amount: int | None = None
    usage_limit: int | None = None
    usage_count: int | None = 0
    start_date: date | None = None
    end_date: date | None = None
    is_active: bool | None = True


class CouponValidationDTO(BaseModel):
    valid: bool
    discount: int = 0
    reason: str | None = None
    coupon: CouponDTO | None = None
