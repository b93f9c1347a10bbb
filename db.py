from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any
import logging

from sqlalchemy import event, Engine, Result, CursorResult
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import Session

import config
from models.base import Base
"""
Imports of these models are needed to correctly create tables in the database.
For more information see https://stackoverflow.com/questions/7478403/sqlalchemy-classes-across-files
"""
from models.product import Product
from models.variant_stock import VariantStock
from models.reservation import InventoryReservation
from models.order import Order
from models.coupon import Coupon, CouponUsage

logger = logging.getLogger(__name__)

# HARD DISABLE SQL echo - statements clutter the checkout logs
sql_echo = False


def build_engine(url: str):
    if url.startswith("sqlite") and ":///" in url:
        # Embedded store: make sure the data folder for a file database exists
        db_path = url.split(":///", 1)[1]
        if db_path and db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    return create_async_engine(url, echo=sql_echo)


url = config.DB_URL
engine = build_engine(url)
session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@asynccontextmanager
async def get_db_session() -> AsyncSession:
    # session_maker is looked up at call time so tests can point it at their own engine
    session = None
    try:
        async with session_maker() as async_session:
            session = async_session
            yield session
    finally:
        if isinstance(session, AsyncSession):
            await session.close()


@asynccontextmanager
async def session_scope(session: AsyncSession | None = None) -> AsyncSession:
    """
    Yield the caller's session untouched, or open one that commits on clean exit.

    Lets repository-level operations join an outer checkout transaction when one is
    passed in, and stand alone otherwise.
    """
    if session is not None:
        yield session
        return
    async with get_db_session() as own_session:
        try:
            yield own_session
            await session_commit(own_session)
        except Exception:
            await session_rollback(own_session)
            raise


async def session_execute(stmt, session: AsyncSession | Session) -> Result[Any] | CursorResult[Any]:
    if isinstance(session, AsyncSession):
        query_result = await session.execute(stmt)
        return query_result
    else:
        query_result = session.execute(stmt)
        return query_result


async def session_flush(session: AsyncSession | Session) -> None:
    if isinstance(session, AsyncSession):
        await session.flush()
    else:
        session.flush()


async def session_commit(session: AsyncSession | Session) -> None:
    if isinstance(session, AsyncSession):
        await session.commit()
    else:
        session.commit()


async def session_rollback(session: AsyncSession | Session) -> None:
    if isinstance(session, AsyncSession):
        await session.rollback()
    else:
        session.rollback()


@event.listens_for(Engine, "connect")
def set_sqlite_pragma(dbapi_connection, connection_record):
    if "sqlite" not in type(dbapi_connection).__module__.lower():
        return
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.execute("PRAGMA busy_timeout=5000")
    cursor.close()


async def create_db_and_tables(bind=None):
    bind = bind or engine
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info(f"Database tables ready ({len(Base.metadata.tables)} tables)")
