"""
Pytest configuration and fixtures for tests.

This file is automatically loaded by pytest and provides shared fixtures
and configuration for all tests.
"""

import os
import sys
from datetime import datetime, timedelta

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

# Add parent directory to Python path so tests can import modules
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

# Test configuration, set before config.py is imported (a local .env never overrides these)
os.environ.setdefault("RUNTIME_ENVIRONMENT", "TEST")
os.environ.setdefault("DB_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("RESERVATION_BACKEND", "memory")
os.environ.setdefault("RESERVATION_TTL_MINUTES", "30")
os.environ.setdefault("STRICT_STOCK_RESERVATION", "false")
os.environ.setdefault("PRICE_MISMATCH_TOLERANCE", "100")
os.environ.setdefault("LOW_STOCK_THRESHOLD", "5")
os.environ.setdefault("PAYSTACK_SECRET_KEY", "")
os.environ.setdefault("PAYSTACK_PUBLIC_KEY", "")
os.environ.setdefault("FRONTEND_URL", "")
os.environ.setdefault("LOG_MASK_SECRETS", "true")

from enums.reservation_backend import ReservationBackend
from models.product import ProductDTO
from repositories.product import ProductRepository
from repositories.reservation import create_reservation_ledger
from repositories.variant_stock import VariantStockRepository
from services.inventory import InventoryService
from utils.variant import split_variant_key

NOW = datetime(2026, 3, 14, 12, 0, 0)


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest_asyncio.fixture
async def test_engine(tmp_path):
    """
    Create test database engine.

    File-backed rather than :memory: so concurrent sessions in one test
    see the same database.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'storefront_test.db'}",
        echo=False
    )

    from db import Base
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session_maker(test_engine, monkeypatch):
    """Point db.get_db_session() at the test engine."""
    import db
    maker = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
    monkeypatch.setattr(db, "session_maker", maker)
    return maker


@pytest_asyncio.fixture
async def test_session(db_session_maker):
    async with db_session_maker() as session:
        yield session


@pytest_asyncio.fixture
async def seed_product(db_session_maker):
    """
    Factory: create a product with per-variant stock.

    Usage:
        await seed_product("hoodie-001", stock={"Black-M": 5}, price=15000)
    """
    async def _seed(product_id: str = "hoodie-001", stock: dict[str, int] | None = None,
                    price: int = 15000, name: str | None = None) -> ProductDTO:
        stock = stock or {}
        colors = sorted({split_variant_key(key)[0] for key in stock})
        sizes = sorted({split_variant_key(key)[1] for key in stock})
        product = ProductDTO(
            id=product_id,
            name=name or f"Product {product_id}",
            slug=product_id,
            category="hoodies",
            price=price,
            colors=colors,
            sizes=sizes
        )
        async with db_session_maker() as session:
            await ProductRepository.create(product, session)
            for variant_key, quantity in stock.items():
                await VariantStockRepository.set_quantity(product_id, variant_key, quantity, session)
            await session.commit()
        return product

    return _seed


# ============================================================================
# Clock / Ledger / Service Fixtures
# ============================================================================

class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture(params=[ReservationBackend.MEMORY, ReservationBackend.DATABASE], ids=["memory", "database"])
def ledger_backend(request):
    return request.param


@pytest_asyncio.fixture
async def ledger(ledger_backend, db_session_maker):
    """Default (non-strict) ledger for each backend."""
    return create_reservation_ledger(ledger_backend, ttl_minutes=30, strict=False)


@pytest_asyncio.fixture
async def inventory_service(ledger, clock):
    return InventoryService(ledger, clock=clock)
