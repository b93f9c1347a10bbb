import logging

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session

from db import session_execute, session_flush
from models.order import Order, OrderDTO

logger = logging.getLogger(__name__)


class OrderRepository:

    @staticmethod
    async def create(order_dto: OrderDTO, session: Session | AsyncSession) -> str:
        order_data = order_dto.model_dump(exclude_none=True, exclude={'created_at', 'updated_at'})
        order = Order(**order_data)
        session.add(order)
        await session_flush(session)
        return order.id

    @staticmethod
    async def get_by_id(order_id: str, session: Session | AsyncSession) -> OrderDTO | None:
        stmt = select(Order).where(Order.id == order_id)
        order = await session_execute(stmt, session)
        order = order.scalar()
        if order is not None:
            return OrderDTO.model_validate(order, from_attributes=True)
        else:
            return None

    @staticmethod
    async def get_by_id_and_email(order_id: str, email: str,
                                  session: Session | AsyncSession) -> OrderDTO | None:
        # Exact, case-sensitive comparison against the stored customer email
        stmt = select(Order).where(Order.id == order_id, Order.customer_email == email)
        order = await session_execute(stmt, session)
        order = order.scalar()
        if order is not None:
            return OrderDTO.model_validate(order, from_attributes=True)
        else:
            return None

    @staticmethod
    async def update_payment_reference(order_id: str, reference: str,
                                       session: Session | AsyncSession) -> None:
        stmt = update(Order).where(Order.id == order_id).values(payment_reference=reference)
        await session_execute(stmt, session)
