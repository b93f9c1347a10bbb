"""
Unit Tests for OrderService.create_order() and OrderService.lookup_order()

Runs the whole checkout path against a real (temporary) SQLite database and both
reservation ledger backends; the payment provider is mocked.
"""

from datetime import date, timedelta
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import select, func

from enums.checkout_state import CheckoutState
from enums.coupon_type import CouponType
from enums.order_status import OrderStatus
from enums.payment_method import PaymentMethod
from enums.payment_status import PaymentStatus
from exceptions.inventory import InsufficientStockException, ProductNotFoundException
from exceptions.order import InvalidProductException, PriceMismatchException, OrderNotFoundException
from exceptions.payment import PaymentInitializationException
from models.checkout import CheckoutRequestDTO
from models.coupon import CouponDTO, CouponUsage
from models.order import Order
from models.payment import PaymentInitDTO
from repositories.coupon import CouponRepository
from repositories.order import OrderRepository
from repositories.reservation import create_reservation_ledger
from services.coupon import CouponService
from services.inventory import InventoryService
from services.order import OrderService


def checkout_request(items, subtotal, total, shipping_cost=0, payment_method="manual",
                     discount_code=None, email="ada@example.com", discount=0) -> CheckoutRequestDTO:
    return CheckoutRequestDTO.model_validate({
        "customerName": "Ada Lovelace",
        "customerEmail": email,
        "customerPhone": "+234 801 234 5678",
        "shippingAddress": {"address": "12 Marina Road", "city": "Lagos", "state": "Lagos", "zip": "100001"},
        "items": items,
        "subtotal": subtotal,
        "shippingCost": shipping_cost,
        "discount": discount,
        "total": total,
        "paymentMethod": payment_method,
        "discountCode": discount_code,
    })


def cart_line(product_id="hoodie-001", color="Black", size="M", quantity=1, price=None, name="Box Logo Hoodie"):
    return {"id": product_id, "name": name, "color": color, "size": size, "quantity": quantity, "price": price}


@pytest.fixture
def payment_service():
    service = AsyncMock()
    service.initialize_transaction = AsyncMock(return_value=PaymentInitDTO(
        access_code="acc_123",
        authorization_url="https://checkout.paystack.com/acc_123",
        reference="LV-REF",
        public_key="pk_test_abc"
    ))
    return service


@pytest.fixture
def inventory(ledger_backend, db_session_maker, clock):
    return InventoryService(create_reservation_ledger(ledger_backend), clock=clock)


@pytest.fixture
def order_service(inventory, payment_service):
    return OrderService(inventory, payment_service, price_tolerance=100)


async def count_orders(session_maker) -> int:
    async with session_maker() as session:
        return (await session.execute(select(func.count(Order.id)))).scalar_one()


async def create_coupon(session_maker, **overrides) -> int:
    data = dict(code="DROP10", type=CouponType.PERCENTAGE, value=10, usage_count=0, is_active=True)
    data.update(overrides)
    async with session_maker() as session:
        coupon_id = await CouponRepository.create(CouponDTO(**data), session)
        await session.commit()
    return coupon_id


class TestCreateOrderSuccess:

    @pytest.mark.asyncio
    async def test_manual_order_is_confirmed_with_server_prices(self, order_service, inventory, seed_product,
                                                                db_session_maker, payment_service):
        # Arrange - client claims a unit price of 1
        await seed_product("hoodie-001", stock={"Black-M": 10}, price=15000, name="Box Logo Hoodie")
        request = checkout_request([cart_line(quantity=2, price=1)], subtotal=30000, total=32000, shipping_cost=2000)

        # Act
        result = await order_service.create_order(request, origin="https://shop.example")

        # Assert
        assert result.state == CheckoutState.CONFIRMED
        assert result.order_id.startswith("LV-")
        assert (result.subtotal, result.shipping_cost, result.discount, result.total) == (30000, 2000, 0, 32000)
        assert result.paystack is None
        payment_service.initialize_transaction.assert_not_called()

        async with db_session_maker() as session:
            order = await OrderRepository.get_by_id(result.order_id, session)
        assert order.items[0].price == 15000
        assert order.items[0].name == "Box Logo Hoodie"
        assert order.payment_method == PaymentMethod.MANUAL
        assert order.payment_status == PaymentStatus.PENDING
        assert order.order_status == OrderStatus.PENDING
        assert order.shipping_address["city"] == "Lagos"

        stock = await inventory.get_stock("hoodie-001", "Black-M")
        assert (stock.available, stock.reserved, stock.total) == (8, 0, 8)
        assert await inventory.get_reservations(result.order_id) == []

    @pytest.mark.asyncio
    async def test_total_within_tolerance_is_accepted(self, order_service, seed_product):
        await seed_product("hoodie-001", stock={"Black-M": 10}, price=15000)
        request = checkout_request([cart_line()], subtotal=15000, total=15100)

        result = await order_service.create_order(request)

        assert result.total == 15000

    @pytest.mark.asyncio
    async def test_paystack_order_initializes_payment(self, order_service, seed_product, payment_service):
        # Arrange
        await seed_product("hoodie-001", stock={"Black-M": 10}, price=15000)
        request = checkout_request([cart_line()], subtotal=15000, total=15000, payment_method="paystack")

        # Act
        result = await order_service.create_order(request, origin="https://shop.example")

        # Assert
        assert result.state == CheckoutState.PAYMENT_INITIATED
        assert result.paystack.access_code == "acc_123"
        payment_service.initialize_transaction.assert_awaited_once_with(
            result.order_id, "ada@example.com", 15000, "https://shop.example"
        )

    @pytest.mark.asyncio
    async def test_generated_order_ids_are_unique(self):
        ids = {OrderService.generate_order_id() for _ in range(200)}

        assert len(ids) == 200
        assert all(len(order_id) == 11 and order_id == order_id.upper() for order_id in ids)


class TestCreateOrderRejected:

    @pytest.mark.asyncio
    async def test_price_mismatch_creates_nothing(self, order_service, inventory, seed_product, db_session_maker):
        # Arrange - server computes 15000, client submits 14000
        await seed_product("hoodie-001", stock={"Black-M": 10}, price=15000)
        request = checkout_request([cart_line()], subtotal=14000, total=14000)

        # Act
        with pytest.raises(PriceMismatchException) as exc_info:
            await order_service.create_order(request)

        # Assert
        error = exc_info.value
        assert error.code == "PRICE_MISMATCH"
        assert str(error) == "Price mismatch detected."
        assert error.details['calculated_total'] == 15000
        assert error.details['checkout_state'] == CheckoutState.ABORTED.value
        assert (await inventory.get_stock("hoodie-001", "Black-M")).reserved == 0
        assert await count_orders(db_session_maker) == 0

    @pytest.mark.asyncio
    async def test_unknown_product_is_invalid(self, order_service, seed_product, db_session_maker):
        # Arrange
        await seed_product("hoodie-001", stock={"Black-M": 10}, price=15000)
        request = checkout_request(
            [cart_line(), cart_line(product_id="ghost", name="Ghost Tee")], subtotal=30000, total=30000
        )

        # Act
        with pytest.raises(InvalidProductException) as exc_info:
            await order_service.create_order(request)

        # Assert
        assert str(exc_info.value) == "Product not found: Ghost Tee"
        assert exc_info.value.details['checkout_state'] == CheckoutState.ABORTED.value
        assert await count_orders(db_session_maker) == 0

    @pytest.mark.asyncio
    async def test_insufficient_stock_aborts_without_order(self, order_service, seed_product, db_session_maker):
        # Arrange
        await seed_product("hoodie-001", stock={"Black-M": 1}, price=15000)
        request = checkout_request([cart_line(quantity=2)], subtotal=30000, total=30000)

        # Act
        with pytest.raises(InsufficientStockException) as exc_info:
            await order_service.create_order(request)

        # Assert
        assert exc_info.value.details['checkout_state'] == CheckoutState.ABORTED.value
        assert await count_orders(db_session_maker) == 0


class TestCreateOrderRollback:

    @pytest.mark.asyncio
    async def test_failure_before_confirmation_releases_holds(self, order_service, inventory, seed_product,
                                                              db_session_maker, monkeypatch):
        # Arrange
        await seed_product("hoodie-001", stock={"Black-M": 5}, price=15000)
        await create_coupon(db_session_maker, code="FIXED500", type=CouponType.FIXED, value=500)
        monkeypatch.setattr(inventory, "confirm_reservation", AsyncMock(side_effect=RuntimeError("store down")))
        request = checkout_request([cart_line(quantity=2)], subtotal=30000, total=29500, discount_code="FIXED500")

        # Act
        with pytest.raises(RuntimeError):
            await order_service.create_order(request)

        # Assert - no order row, no coupon usage, no holds, stock untouched
        assert await count_orders(db_session_maker) == 0
        async with db_session_maker() as session:
            usage_rows = (await session.execute(select(func.count(CouponUsage.id)))).scalar_one()
            coupon = await CouponRepository.get_active_by_code("FIXED500", session)
        assert usage_rows == 0
        assert coupon.usage_count == 0
        stock = await inventory.get_stock("hoodie-001", "Black-M")
        assert (stock.available, stock.reserved, stock.total) == (5, 0, 5)

    @pytest.mark.asyncio
    async def test_rolled_back_state_is_reported(self, order_service, inventory, seed_product, monkeypatch):
        # Arrange
        await seed_product("hoodie-001", stock={"Black-M": 5}, price=15000)
        monkeypatch.setattr(
            inventory, "confirm_reservation", AsyncMock(side_effect=ProductNotFoundException("hoodie-001"))
        )
        request = checkout_request([cart_line()], subtotal=15000, total=15000)

        # Act
        with pytest.raises(ProductNotFoundException) as exc_info:
            await order_service.create_order(request)

        # Assert
        assert exc_info.value.details['checkout_state'] == CheckoutState.ROLLED_BACK.value

    @pytest.mark.asyncio
    async def test_payment_failure_keeps_confirmed_order(self, order_service, inventory, seed_product,
                                                         db_session_maker, payment_service):
        # Arrange
        await seed_product("hoodie-001", stock={"Black-M": 5}, price=15000)

        async def fail(order_id, email, amount, origin):
            raise PaymentInitializationException(order_id, "Invalid key")

        payment_service.initialize_transaction = AsyncMock(side_effect=fail)
        request = checkout_request([cart_line()], subtotal=15000, total=15000, payment_method="paystack")

        # Act
        with pytest.raises(PaymentInitializationException) as exc_info:
            await order_service.create_order(request)

        # Assert - order and deduction stay in place
        error = exc_info.value
        assert error.details['checkout_state'] == CheckoutState.CONFIRMED.value
        async with db_session_maker() as session:
            order = await OrderRepository.get_by_id(error.order_id, session)
        assert order is not None
        assert order.payment_status == PaymentStatus.PENDING
        assert (await inventory.get_stock("hoodie-001", "Black-M")).total == 4


class TestCreateOrderDiscounts:

    @pytest.mark.asyncio
    async def test_percentage_coupon_is_recomputed_and_recorded(self, order_service, seed_product, db_session_maker):
        # Arrange - client claims a bigger discount than the coupon gives
        await seed_product("hoodie-001", stock={"Black-M": 5}, price=15000)
        coupon_id = await create_coupon(db_session_maker, code="DROP10", value=10)
        request = checkout_request(
            [cart_line()], subtotal=15000, total=13500, discount_code="drop10", discount=9000
        )

        # Act
        result = await order_service.create_order(request)

        # Assert
        assert result.discount == 1500
        assert result.total == 13500
        async with db_session_maker() as session:
            coupon = await CouponRepository.get_active_by_code("DROP10", session)
            usages = await CouponRepository.get_usage_by_order(result.order_id, session)
        assert coupon.usage_count == 1
        assert len(usages) == 1
        assert usages[0].coupon_id == coupon_id
        assert usages[0].discount_amount == 1500

    @pytest.mark.asyncio
    async def test_exhausted_coupon_gives_no_discount(self, order_service, seed_product, db_session_maker):
        # Arrange - usage_limit=1, usage_count=1
        await seed_product("hoodie-001", stock={"Black-M": 5}, price=15000)
        await create_coupon(db_session_maker, code="ONCE", type=CouponType.FIXED, value=5000,
                            usage_limit=1, usage_count=1)
        request = checkout_request([cart_line()], subtotal=15000, total=15000, discount_code="ONCE")

        # Act
        result = await order_service.create_order(request)
        standalone = await CouponService.validate("ONCE", 15000)

        # Assert - order path and standalone validation agree
        assert result.discount == 0
        assert result.total == 15000
        assert standalone.valid is False
        assert standalone.reason == "Coupon usage limit reached"
        async with db_session_maker() as session:
            coupon = await CouponRepository.get_active_by_code("ONCE", session)
        assert coupon.usage_count == 1

    @pytest.mark.asyncio
    async def test_exhausted_coupon_with_discounted_client_total_mismatches(self, order_service, seed_product,
                                                                            db_session_maker):
        await seed_product("hoodie-001", stock={"Black-M": 5}, price=15000)
        await create_coupon(db_session_maker, code="ONCE", type=CouponType.FIXED, value=5000,
                            usage_limit=1, usage_count=1)
        request = checkout_request([cart_line()], subtotal=15000, total=10000, discount_code="ONCE")

        with pytest.raises(PriceMismatchException):
            await order_service.create_order(request)

    @pytest.mark.asyncio
    async def test_expired_coupon_is_ignored(self, order_service, seed_product, db_session_maker):
        await seed_product("hoodie-001", stock={"Black-M": 5}, price=15000)
        await create_coupon(db_session_maker, code="OLD", end_date=date.today() - timedelta(days=1))
        request = checkout_request([cart_line()], subtotal=15000, total=15000, discount_code="OLD")

        result = await order_service.create_order(request)

        assert result.discount == 0


class TestLookupOrder:

    @pytest.mark.asyncio
    async def test_lookup_with_exact_email(self, order_service, seed_product):
        # Arrange
        await seed_product("hoodie-001", stock={"Black-M": 5}, price=15000)
        result = await order_service.create_order(
            checkout_request([cart_line()], subtotal=15000, total=15000, email="Ada@Example.com")
        )

        # Act
        order = await OrderService.lookup_order(result.order_id, "Ada@Example.com")

        # Assert
        assert order.id == result.order_id
        assert order.total == 15000

    @pytest.mark.asyncio
    async def test_lookup_email_is_case_sensitive(self, order_service, seed_product):
        # Arrange
        await seed_product("hoodie-001", stock={"Black-M": 5}, price=15000)
        result = await order_service.create_order(
            checkout_request([cart_line()], subtotal=15000, total=15000, email="Ada@Example.com")
        )

        # Act & Assert
        with pytest.raises(OrderNotFoundException) as exc_info:
            await OrderService.lookup_order(result.order_id, "ada@example.com")
        assert exc_info.value.code == "ORDER_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_lookup_unknown_order(self, db_session_maker):
        with pytest.raises(OrderNotFoundException):
            await OrderService.lookup_order("LV-00000000", "ada@example.com")
