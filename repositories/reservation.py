"""
Reservation ledger: time-bounded holds against variant stock, scoped to an order.

Two backends satisfy the same contract:
- InMemoryReservationLedger: in-process dict, for a single embedded instance.
  Holds are lost on restart; the TTL would have reclaimed them anyway.
- SqlReservationLedger: the shared inventory_reservations table.

A reservation is identified by (product_id, variant_key, order_id); writing the same
key again replaces the previous hold. Expired holds never count towards availability,
whether or not the sweep has physically removed them yet.

Every operation accepts the caller's session so a checkout can keep its writes in one
transaction. The in-memory ledger ignores it.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager, AsyncExitStack
from datetime import datetime, timedelta
from typing import AsyncIterator, Iterable

from sqlalchemy import select, delete, func
from sqlalchemy.ext.asyncio import AsyncSession

import config
from db import session_execute, session_flush, session_scope
from enums.reservation_backend import ReservationBackend
from exceptions.inventory import InvalidQuantityException
from models.reservation import InventoryReservation, ReservationDTO

logger = logging.getLogger(__name__)

VariantRef = tuple[str, str]  # (product_id, variant_key)


class ReservationLedger(ABC):

    def __init__(self, ttl_minutes: int | None = None, strict: bool | None = None):
        self.ttl = timedelta(minutes=ttl_minutes if ttl_minutes is not None else config.RESERVATION_TTL_MINUTES)
        self.strict = config.STRICT_STOCK_RESERVATION if strict is None else strict
        self._variant_locks: dict[VariantRef, asyncio.Lock] = {}

    @asynccontextmanager
    async def variant_lock(self, variants: Iterable[VariantRef]) -> AsyncIterator[None]:
        """
        Critical section around "read available stock -> write reservation" for the given variants.

        Non-strict (default): no-op. Two concurrent checkouts can both read the same
        availability before either writes, so the last unit can be reserved twice.

        Strict: per-variant asyncio locks, acquired in sorted order so overlapping
        carts cannot deadlock. Closes the gap within one process only; several
        processes sharing a database still need a store-level lock here.
        """
        if not self.strict:
            yield
            return
        ordered = sorted(set(variants))
        async with AsyncExitStack() as stack:
            for ref in ordered:
                lock = self._variant_locks.setdefault(ref, asyncio.Lock())
                await stack.enter_async_context(lock)
            yield

    def expiry_for(self, now: datetime) -> datetime:
        return now + self.ttl

    @staticmethod
    def check_quantity(product_id: str, variant_key: str, quantity: int) -> None:
        if quantity < 1:
            raise InvalidQuantityException(product_id, variant_key, quantity)

    @abstractmethod
    async def put(self, product_id: str, variant_key: str, quantity: int, order_id: str,
                  now: datetime | None = None, session: AsyncSession | None = None) -> ReservationDTO:
        """Create or replace the hold keyed by (product_id, variant_key, order_id).

        Raises:
            InvalidQuantityException: quantity below 1 (nothing is written)
        """

    @abstractmethod
    async def sum_active(self, product_id: str, variant_key: str, now: datetime,
                         session: AsyncSession | None = None) -> int:
        """Sum of quantities held for a variant by reservations with expires_at > now."""

    @abstractmethod
    async def delete_by_key(self, product_id: str, variant_key: str, order_id: str,
                            session: AsyncSession | None = None) -> None:
        """Remove one hold. Absent keys are not an error."""

    @abstractmethod
    async def delete_by_order(self, order_id: str, session: AsyncSession | None = None) -> int:
        """Remove every hold of an order regardless of variant. Returns the number removed."""

    @abstractmethod
    async def sweep_expired(self, now: datetime, session: AsyncSession | None = None) -> list[ReservationDTO]:
        """Remove and return every hold with expires_at <= now."""

    @abstractmethod
    async def get_by_order(self, order_id: str, session: AsyncSession | None = None) -> list[ReservationDTO]:
        """All holds of an order, expired or not."""


class InMemoryReservationLedger(ReservationLedger):

    def __init__(self, ttl_minutes: int | None = None, strict: bool | None = None):
        super().__init__(ttl_minutes, strict)
        self._reservations: dict[tuple[str, str, str], ReservationDTO] = {}

    async def put(self, product_id, variant_key, quantity, order_id, now=None, session=None):
        self.check_quantity(product_id, variant_key, quantity)
        now = now or datetime.now()
        reservation = ReservationDTO(
            product_id=product_id,
            variant_key=variant_key,
            quantity=quantity,
            order_id=order_id,
            expires_at=self.expiry_for(now)
        )
        self._reservations[reservation.key] = reservation
        return reservation

    async def sum_active(self, product_id, variant_key, now, session=None):
        return sum(
            reservation.quantity
            for reservation in self._reservations.values()
            if reservation.product_id == product_id
            and reservation.variant_key == variant_key
            and reservation.expires_at > now
        )

    async def delete_by_key(self, product_id, variant_key, order_id, session=None):
        self._reservations.pop((product_id, variant_key, order_id), None)

    async def delete_by_order(self, order_id, session=None):
        keys = [key for key, reservation in self._reservations.items() if reservation.order_id == order_id]
        for key in keys:
            del self._reservations[key]
        return len(keys)

    async def sweep_expired(self, now, session=None):
        expired = [reservation for reservation in self._reservations.values() if reservation.expires_at <= now]
        for reservation in expired:
            del self._reservations[reservation.key]
        return expired

    async def get_by_order(self, order_id, session=None):
        return [reservation for reservation in self._reservations.values() if reservation.order_id == order_id]


class SqlReservationLedger(ReservationLedger):
    """
    Table-backed ledger.

    put() is a delete-then-insert inside one transaction; there is no conditional
    insert guarding availability, so correctness under concurrency depends on
    variant_lock (see ReservationLedger.variant_lock).
    """

    @staticmethod
    def _key_filter(product_id: str, variant_key: str, order_id: str):
        return (
            InventoryReservation.product_id == product_id,
            InventoryReservation.variant_key == variant_key,
            InventoryReservation.order_id == order_id,
        )

    async def put(self, product_id, variant_key, quantity, order_id, now=None, session=None):
        self.check_quantity(product_id, variant_key, quantity)
        now = now or datetime.now()
        expires_at = self.expiry_for(now)
        async with session_scope(session) as scoped:
            await session_execute(
                delete(InventoryReservation).where(*self._key_filter(product_id, variant_key, order_id)),
                scoped
            )
            scoped.add(InventoryReservation(
                product_id=product_id,
                variant_key=variant_key,
                quantity=quantity,
                order_id=order_id,
                created_at=now,
                expires_at=expires_at
            ))
            await session_flush(scoped)
        return ReservationDTO(
            product_id=product_id,
            variant_key=variant_key,
            quantity=quantity,
            order_id=order_id,
            expires_at=expires_at
        )

    async def sum_active(self, product_id, variant_key, now, session=None):
        stmt = select(func.coalesce(func.sum(InventoryReservation.quantity), 0)).where(
            InventoryReservation.product_id == product_id,
            InventoryReservation.variant_key == variant_key,
            InventoryReservation.expires_at > now
        )
        async with session_scope(session) as scoped:
            result = await session_execute(stmt, scoped)
            return int(result.scalar_one())

    async def delete_by_key(self, product_id, variant_key, order_id, session=None):
        stmt = delete(InventoryReservation).where(*self._key_filter(product_id, variant_key, order_id))
        async with session_scope(session) as scoped:
            await session_execute(stmt, scoped)

    async def delete_by_order(self, order_id, session=None):
        stmt = delete(InventoryReservation).where(InventoryReservation.order_id == order_id)
        async with session_scope(session) as scoped:
            result = await session_execute(stmt, scoped)
            return result.rowcount

    async def sweep_expired(self, now, session=None):
        async with session_scope(session) as scoped:
            result = await session_execute(
                select(InventoryReservation).where(InventoryReservation.expires_at <= now),
                scoped
            )
            rows = result.scalars().all()
            expired = [ReservationDTO.model_validate(row, from_attributes=True) for row in rows]
            if rows:
                await session_execute(
                    delete(InventoryReservation).where(InventoryReservation.id.in_([row.id for row in rows])),
                    scoped
                )
            return expired

    async def get_by_order(self, order_id, session=None):
        stmt = select(InventoryReservation).where(InventoryReservation.order_id == order_id)
        async with session_scope(session) as scoped:
            result = await session_execute(stmt, scoped)
            return [ReservationDTO.model_validate(row, from_attributes=True) for row in result.scalars().all()]


def create_reservation_ledger(backend: ReservationBackend | None = None, **kwargs) -> ReservationLedger:
    """Pick the ledger implementation once, at process start."""
    backend = backend or config.RESERVATION_BACKEND
    if backend == ReservationBackend.DATABASE:
        ledger = SqlReservationLedger(**kwargs)
    else:
        ledger = InMemoryReservationLedger(**kwargs)
    logger.info(f"Reservation ledger: {backend.value} (strict={ledger.strict}, ttl={ledger.ttl})")
    return ledger
