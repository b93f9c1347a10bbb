from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session

from db import session_execute, session_flush
from models.product import Product, ProductDTO


class ProductRepository:

    @staticmethod
    async def get_by_id(product_id: str, session: Session | AsyncSession) -> ProductDTO | None:
        stmt = select(Product).where(Product.id == product_id)
        product = await session_execute(stmt, session)
        product = product.scalar()
        if product is None:
            return None
        return ProductDTO.model_validate(product, from_attributes=True)

    @staticmethod
    async def get_by_ids(product_ids: list[str], session: Session | AsyncSession) -> dict[str, ProductDTO]:
        """
        Batch load products for a cart (avoids one query per line).

        Returns:
            Dict mapping product_id -> ProductDTO (missing ids are absent)
        """
        if not product_ids:
            return {}
        stmt = select(Product).where(Product.id.in_(set(product_ids)))
        result = await session_execute(stmt, session)
        return {
            product.id: ProductDTO.model_validate(product, from_attributes=True)
            for product in result.scalars().all()
        }

    @staticmethod
    async def exists(product_id: str, session: Session | AsyncSession) -> bool:
        stmt = select(Product.id).where(Product.id == product_id)
        result = await session_execute(stmt, session)
        return result.scalar() is not None

    @staticmethod
    async def create(product_dto: ProductDTO, session: Session | AsyncSession) -> str:
        product = Product(**product_dto.model_dump(exclude_none=True))
        session.add(product)
        await session_flush(session)
        return product.id
