"""
Models Package

This file ensures all SQLAlchemy models are imported and registered,
which is required for relationships to work correctly.
"""

from models.base import Base
from models.product import Product
from models.variant_stock import VariantStock
from models.reservation import InventoryReservation
from models.order import Order
from models.coupon import Coupon, CouponUsage
