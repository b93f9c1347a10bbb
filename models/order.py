from datetime import datetime

from pydantic import BaseModel
from sqlalchemy import Column, Integer, String, Text, DateTime, JSON, func, Enum as SQLEnum, Index

from enums.order_status import OrderStatus
from enums.payment_method import PaymentMethod
from enums.payment_status import PaymentStatus
from models.base import Base


class Order(Base):
    __tablename__ = 'orders'

    id = Column(String(50), primary_key=True)  # "LV-XXXXXXXX"
    customer_name = Column(String(100), nullable=False)
    customer_email = Column(String(254), nullable=False)
    customer_phone = Column(String(20), nullable=True)
    shipping_address = Column(JSON, nullable=False)
    items = Column(JSON, nullable=False)  # Validated lines with server-trusted prices

    # Server-computed figures
    subtotal = Column(Integer, nullable=False)
    shipping_cost = Column(Integer, nullable=False)
    discount = Column(Integer, nullable=False, default=0)
    total = Column(Integer, nullable=False)

    payment_method = Column(SQLEnum(PaymentMethod), nullable=False)
    payment_status = Column(SQLEnum(PaymentStatus), nullable=False, default=PaymentStatus.PENDING)
    payment_reference = Column(String(100), nullable=True)
    order_status = Column(SQLEnum(OrderStatus), nullable=False, default=OrderStatus.PENDING)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index('ix_orders_customer_email', 'customer_email'),
        Index('ix_orders_order_status', 'order_status'),
    )


class OrderItemDTO(BaseModel):
    id: str
    name: str
    color: str
    size: str
    quantity: int
    price: int

    @property
    def variant_key(self) -> str:
        return f"{self.color}-{self.size}"


class OrderDTO(BaseModel):
    id: str | None = None
    customer_name: str | None = None
    customer_email: str | None = None
    customer_phone: str | None = None
    shipping_address: dict | None = None
    items: list[OrderItemDTO] | None = None
    subtotal: int | None = None
    shipping_cost: int | None = None
    discount: int | None = None
    total: int | None = None
    payment_method: PaymentMethod | None = None
    payment_status: PaymentStatus | None = None
    payment_reference: str | None = None
    order_status: OrderStatus | None = None
    notes: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
