from sqlalchemy import select, update, case
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session

from db import session_execute, session_flush
from models.product import Product
from models.variant_stock import VariantStock


class VariantStockRepository:

    @staticmethod
    async def get_quantity(product_id: str, variant_key: str, session: Session | AsyncSession) -> int:
        stmt = select(VariantStock.quantity).where(
            VariantStock.product_id == product_id,
            VariantStock.variant_key == variant_key
        )
        quantity = await session_execute(stmt, session)
        return quantity.scalar() or 0

    @staticmethod
    async def set_quantity(product_id: str, variant_key: str, quantity: int,
                           session: Session | AsyncSession) -> int:
        """Absolute set of a variant's total, creating the row if the variant is new."""
        stmt = (update(VariantStock)
                .where(VariantStock.product_id == product_id,
                       VariantStock.variant_key == variant_key)
                .values(quantity=quantity))
        result = await session_execute(stmt, session)
        if result.rowcount == 0:
            session.add(VariantStock(product_id=product_id, variant_key=variant_key, quantity=quantity))
            await session_flush(session)
        return quantity

    @staticmethod
    async def deduct(product_id: str, variant_key: str, quantity: int,
                     session: Session | AsyncSession) -> int:
        """
        Subtract `quantity` from a variant's total, floored at 0.

        Single conditional UPDATE on the variant's own row, so the read-modify-write
        happens inside the store and concurrent deductions cannot lose each other.

        Returns:
            The variant's total after the deduction
        """
        stmt = (update(VariantStock)
                .where(VariantStock.product_id == product_id,
                       VariantStock.variant_key == variant_key)
                .values(quantity=case(
                    (VariantStock.quantity > quantity, VariantStock.quantity - quantity),
                    else_=0
                )))
        result = await session_execute(stmt, session)
        if result.rowcount == 0:
            # Unknown variant: record it as sold out rather than going negative
            session.add(VariantStock(product_id=product_id, variant_key=variant_key, quantity=0))
            await session_flush(session)
            return 0
        return await VariantStockRepository.get_quantity(product_id, variant_key, session)

    @staticmethod
    async def get_at_or_below(threshold: int,
                              session: Session | AsyncSession) -> list[tuple[str, str, str, int]]:
        """
        Every variant whose raw total is <= threshold.

        Returns:
            List of (product_id, product_name, variant_key, quantity) ordered by product, variant
        """
        stmt = (select(VariantStock.product_id, Product.name, VariantStock.variant_key, VariantStock.quantity)
                .join(Product, Product.id == VariantStock.product_id)
                .where(VariantStock.quantity <= threshold)
                .order_by(VariantStock.product_id, VariantStock.variant_key))
        result = await session_execute(stmt, session)
        return [(row[0], row[1], row[2], row[3]) for row in result.all()]
