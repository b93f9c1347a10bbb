from enum import Enum


class CouponType(Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"
