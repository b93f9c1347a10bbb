from datetime import datetime

from pydantic import BaseModel
from sqlalchemy import Column, Integer, String, DateTime, JSON, func, CheckConstraint
from sqlalchemy.orm import relationship

from models.base import Base


# Catalog record; only the fields the checkout path reads live here.
# Stock is tracked per variant in variant_stock.
class Product(Base):
    __tablename__ = 'products'

    id = Column(String(50), primary_key=True)
    name = Column(String(200), nullable=False)
    slug = Column(String(200), unique=True, nullable=False)
    category = Column(String(50), nullable=False)
    price = Column(Integer, nullable=False)
    colors = Column(JSON, nullable=False, default=list)
    sizes = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, default=func.now())

    variants = relationship("VariantStock", back_populates="product", cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint('price >= 0', name='ck_products_price_non_negative'),
    )


class ProductDTO(BaseModel):
    id: str | None = None
    name: str | None = None
    slug: str | None = None
    category: str | None = None
    price: int | None = None
    colors: list[str] | None = None
    sizes: list[str] | None = None
    created_at: datetime | None = None
