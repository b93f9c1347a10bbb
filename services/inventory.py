import logging
from datetime import datetime
from typing import Callable, Iterable, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

import config
from db import session_scope
from exceptions.inventory import InsufficientStockException, ProductNotFoundException
from models.reservation import ReservationDTO
from models.variant_stock import StockLevelDTO, LowStockDTO
from repositories.product import ProductRepository
from repositories.reservation import ReservationLedger
from repositories.variant_stock import VariantStockRepository
from utils.variant import split_variant_key

logger = logging.getLogger(__name__)


class StockLine(Protocol):
    """Anything with a product id, a variant key and a quantity (cart lines, order items)."""
    id: str
    name: str
    quantity: int

    @property
    def variant_key(self) -> str: ...


class _MergedLine:
    __slots__ = ('product_id', 'variant_key', 'quantity', 'name')

    def __init__(self, product_id: str, variant_key: str, quantity: int, name: str | None):
        self.product_id = product_id
        self.variant_key = variant_key
        self.quantity = quantity
        self.name = name


def merge_lines(items: Iterable[StockLine]) -> list[_MergedLine]:
    """
    Collapse lines for the same variant into one, keeping first-seen order.

    A reservation is keyed per variant per order, so two cart lines for the same
    variant must be checked and held as their combined quantity.
    """
    merged: dict[tuple[str, str], _MergedLine] = {}
    for item in items:
        key = (item.id, item.variant_key)
        if key in merged:
            merged[key].quantity += item.quantity
        else:
            merged[key] = _MergedLine(item.id, item.variant_key, item.quantity, getattr(item, 'name', None))
    return list(merged.values())


class InventoryService:
    """
    The only component that answers "is this variant available" and the only one
    that mutates reservations or variant stock.

    available = max(0, total - active reservations). Stock totals change only in
    confirm_reservation (deduction) and update_stock (admin absolute set).
    """

    def __init__(self, ledger: ReservationLedger, clock: Callable[[], datetime] = datetime.now):
        self.ledger = ledger
        self.clock = clock

    def _check_quantities(self, items: list[StockLine]) -> None:
        for item in items:
            self.ledger.check_quantity(item.id, item.variant_key, item.quantity)

    async def get_stock(self, product_id: str, variant_key: str,
                        session: AsyncSession | None = None) -> StockLevelDTO:
        """
        Live stock level of one variant.

        A missing product reports zero stock instead of raising.
        """
        async with session_scope(session) as scoped:
            if not await ProductRepository.exists(product_id, scoped):
                return StockLevelDTO()
            total = await VariantStockRepository.get_quantity(product_id, variant_key, scoped)
            reserved = await self.ledger.sum_active(product_id, variant_key, self.clock(), session=scoped)
        return StockLevelDTO(available=max(0, total - reserved), reserved=reserved, total=total)

    async def reserve_items(self, items: Iterable[StockLine], order_id: str,
                            session: AsyncSession | None = None) -> list[ReservationDTO]:
        """
        All-or-nothing hold of every line for one order.

        Every line is checked against live availability before anything is written.
        If writing a later hold fails, the holds already written by this call are
        released before the error propagates.

        Raises:
            InvalidQuantityException: a line asks for fewer than 1 unit (checked before any read or write)
            InsufficientStockException: first line (in input order) whose quantity exceeds availability
        """
        items = list(items)
        self._check_quantities(items)
        lines = merge_lines(items)

        async with self.ledger.variant_lock((line.product_id, line.variant_key) for line in lines):
            for line in lines:
                stock = await self.get_stock(line.product_id, line.variant_key, session=session)
                if line.quantity > stock.available:
                    logger.warning(
                        f"Reservation rejected for order {order_id}: {line.product_id} {line.variant_key} "
                        f"requested={line.quantity} available={stock.available}"
                    )
                    raise InsufficientStockException(
                        product_id=line.product_id,
                        variant_key=line.variant_key,
                        requested=line.quantity,
                        available=stock.available,
                        product_name=line.name
                    )

            now = self.clock()
            created: list[ReservationDTO] = []
            try:
                for line in lines:
                    reservation = await self.ledger.put(
                        line.product_id, line.variant_key, line.quantity, order_id, now=now, session=session
                    )
                    created.append(reservation)
            except Exception:
                logger.error(f"Reservation write failed for order {order_id}, releasing {len(created)} hold(s)")
                for reservation in created:
                    try:
                        await self.release_reservation(
                            reservation.product_id, reservation.variant_key, order_id, session=session
                        )
                    except Exception as release_error:
                        logger.critical(
                            f"Failed to release hold {reservation.key} during rollback: {release_error}"
                        )
                raise

        logger.info(f"Reserved {len(created)} variant(s) for order {order_id}")
        return created

    async def confirm_reservation(self, order_id: str, items: Iterable[StockLine],
                                  session: AsyncSession | None = None) -> dict[str, int]:
        """
        Turn the order's holds into permanent deductions.

        Deduction proceeds even if the hold has already expired; totals are floored
        at 0. Call once per order: a second call deducts again from the item list.

        Returns:
            Dict mapping "{product_id}:{variant_key}" -> new total

        Raises:
            InvalidQuantityException: a line asks for fewer than 1 unit
            ProductNotFoundException: if a line references an unknown product
        """
        items = list(items)
        self._check_quantities(items)
        new_totals = {}
        async with session_scope(session) as scoped:
            for line in merge_lines(items):
                if not await ProductRepository.exists(line.product_id, scoped):
                    raise ProductNotFoundException(line.product_id)
                new_total = await VariantStockRepository.deduct(
                    line.product_id, line.variant_key, line.quantity, scoped
                )
                await self.ledger.delete_by_key(line.product_id, line.variant_key, order_id, session=scoped)
                new_totals[f"{line.product_id}:{line.variant_key}"] = new_total
                logger.info(
                    f"Confirmed {line.quantity}x {line.product_id} {line.variant_key} "
                    f"for order {order_id} (stock now {new_total})"
                )
        return new_totals

    async def cancel_reservation(self, order_id: str, session: AsyncSession | None = None) -> int:
        """Release every hold of the order. Stock totals are not touched."""
        released = await self.ledger.delete_by_order(order_id, session=session)
        logger.info(f"Released {released} reservation(s) for order {order_id}")
        return released

    async def release_reservation(self, product_id: str, variant_key: str, order_id: str,
                                  session: AsyncSession | None = None) -> None:
        await self.ledger.delete_by_key(product_id, variant_key, order_id, session=session)

    async def update_stock(self, product_id: str, variant_key: str, new_quantity: int,
                           session: AsyncSession | None = None) -> int:
        """
        Administrative absolute set of a variant's total, clamped to >= 0.

        Raises:
            ProductNotFoundException: if the product does not exist
        """
        quantity = max(0, new_quantity)
        async with session_scope(session) as scoped:
            if not await ProductRepository.exists(product_id, scoped):
                raise ProductNotFoundException(product_id)
            await VariantStockRepository.set_quantity(product_id, variant_key, quantity, scoped)
        logger.info(f"Stock for {product_id} {variant_key} set to {quantity}")
        return quantity

    async def get_low_stock(self, threshold: int | None = None,
                            session: AsyncSession | None = None) -> list[LowStockDTO]:
        """
        Variants whose raw total (reservations ignored) is at or below threshold.
        Meant for restock planning, not live sell-through.
        """
        threshold = config.LOW_STOCK_THRESHOLD if threshold is None else threshold
        async with session_scope(session) as scoped:
            rows = await VariantStockRepository.get_at_or_below(threshold, scoped)
        low_stock = []
        for product_id, product_name, variant_key, quantity in rows:
            color, size = split_variant_key(variant_key)
            low_stock.append(LowStockDTO(
                product_id=product_id,
                product_name=product_name,
                variant_key=variant_key,
                color=color,
                size=size,
                quantity=quantity,
                threshold=threshold
            ))
        return low_stock

    async def cleanup_expired_reservations(self) -> list[ReservationDTO]:
        expired = await self.ledger.sweep_expired(self.clock())
        if expired:
            order_ids = sorted({reservation.order_id for reservation in expired})
            logger.info(f"Swept {len(expired)} expired reservation(s) for orders: {', '.join(order_ids)}")
        else:
            logger.debug("No expired reservations found")
        return expired

    async def get_reservations(self, order_id: str) -> list[ReservationDTO]:
        return await self.ledger.get_by_order(order_id)
