from pydantic import BaseModel
from sqlalchemy import Column, Integer, String, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship

from models.base import Base


class VariantStock(Base):
    """
    Total stock for one color x size variant of a product.

    One row per variant so a deduction touches only its own row; concurrent
    confirmations for different variants of the same product never overwrite
    each other.
    """
    __tablename__ = 'variant_stock'

    product_id = Column(String(50), ForeignKey('products.id', ondelete='CASCADE'), primary_key=True)
    variant_key = Column(String(100), primary_key=True)  # "{color}-{size}"
    quantity = Column(Integer, nullable=False, default=0)

    product = relationship("Product", back_populates="variants")

    __table_args__ = (
        CheckConstraint('quantity >= 0', name='ck_variant_stock_non_negative'),
    )


class StockLevelDTO(BaseModel):
    available: int = 0
    reserved: int = 0
    total: int = 0


class LowStockDTO(BaseModel):
    product_id: str
    product_name: str
    variant_key: str
    color: str
    size: str
    quantity: int
    threshold: int
