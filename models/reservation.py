from datetime import datetime

from pydantic import BaseModel
from sqlalchemy import Column, Integer, String, DateTime, func, CheckConstraint, Index

from models.base import Base


class InventoryReservation(Base):
    __tablename__ = 'inventory_reservations'

    # No unique constraint on (product_id, variant_key, order_id): the ledger
    # replaces an existing hold for the same key instead of relying on the store.
    __table_args__ = (
        CheckConstraint('quantity > 0', name='ck_inventory_reservations_positive_quantity'),

        # Indexes for performance
        Index('ix_inventory_reservations_order_id', 'order_id'),
        Index('ix_inventory_reservations_expires_at', 'expires_at'),
        Index('ix_inventory_reservations_variant_expires', 'product_id', 'variant_key', 'expires_at'),
    )

    id = Column(Integer, primary_key=True)
    product_id = Column(String(50), nullable=False)
    variant_key = Column(String(100), nullable=False)
    quantity = Column(Integer, nullable=False)
    order_id = Column(String(50), nullable=False)
    created_at = Column(DateTime, default=func.now(), nullable=False)
    expires_at = Column(DateTime, nullable=False)


class ReservationDTO(BaseModel):
    product_id: str
    variant_key: str
    quantity: int
    order_id: str
    expires_at: datetime

    @property
    def key(self) -> tuple[str, str, str]:
        return self.product_id, self.variant_key, self.order_id
