"""
Unit Tests for CouponService

Tests discount calculation (rounding and caps) and server-side validation
against a temporary SQLite database.
"""

from datetime import date, timedelta

import pytest

from enums.coupon_type import CouponType
from models.coupon import CouponDTO
from repositories.coupon import CouponRepository
from services.coupon import CouponService

TODAY = date(2026, 3, 14)


def coupon(**overrides) -> CouponDTO:
    data = dict(id=1, code="DROP10", type=CouponType.PERCENTAGE, value=10, usage_count=0)
    data.update(overrides)
    return CouponDTO(**data)


class TestCalculateDiscount:

    def test_percentage_rounds_half_up(self):
        # 10% of 12345 = 1234.5
        assert CouponService.calculate_discount(coupon(value=10), 12345) == 1235

    def test_percentage_rounds_down_below_half(self):
        # 15% of 1001 = 150.15
        assert CouponService.calculate_discount(coupon(value=15), 1001) == 150

    def test_fixed_amount(self):
        assert CouponService.calculate_discount(coupon(type=CouponType.FIXED, value=2500), 20000) == 2500

    def test_percentage_capped_by_max_discount(self):
        discount = CouponService.calculate_discount(coupon(value=50, max_discount_amount=3000), 20000)

        assert discount == 3000

    def test_fixed_never_exceeds_subtotal(self):
        discount = CouponService.calculate_discount(coupon(type=CouponType.FIXED, value=5000), 3000)

        assert discount == 3000

    def test_hundred_percent_is_whole_subtotal(self):
        assert CouponService.calculate_discount(coupon(value=100), 17999) == 17999


class TestValidate:

    @staticmethod
    async def create(session, **overrides):
        data = dict(code="DROP10", type=CouponType.PERCENTAGE, value=10, usage_count=0, is_active=True)
        data.update(overrides)
        await CouponRepository.create(CouponDTO(**data), session)
        await session.commit()

    @pytest.mark.asyncio
    async def test_valid_coupon_returns_discount(self, test_session):
        # Arrange
        await self.create(test_session)

        # Act
        result = await CouponService.validate("DROP10", 20000, today=TODAY)

        # Assert
        assert result.valid is True
        assert result.discount == 2000
        assert result.reason is None
        assert result.coupon.code == "DROP10"

    @pytest.mark.asyncio
    async def test_code_lookup_is_case_insensitive(self, test_session):
        await self.create(test_session)

        result = await CouponService.validate("drop10", 20000, today=TODAY)

        assert result.valid is True

    @pytest.mark.asyncio
    async def test_unknown_code(self, db_session_maker):
        result = await CouponService.validate("NOPE", 20000, today=TODAY)

        assert result.valid is False
        assert result.discount == 0
        assert result.reason == "Invalid or inactive coupon code"
        assert result.coupon is None

    @pytest.mark.asyncio
    async def test_inactive_code_is_unknown(self, test_session):
        await self.create(test_session, is_active=False)

        result = await CouponService.validate("DROP10", 20000, today=TODAY)

        assert result.reason == "Invalid or inactive coupon code"

    @pytest.mark.asyncio
    async def test_not_started(self, test_session):
        await self.create(test_session, start_date=TODAY + timedelta(days=1))

        result = await CouponService.validate("DROP10", 20000, today=TODAY)

        assert result.valid is False
        assert result.reason == "Coupon is not active yet"

    @pytest.mark.asyncio
    async def test_expired(self, test_session):
        await self.create(test_session, end_date=TODAY - timedelta(days=1))

        result = await CouponService.validate("DROP10", 20000, today=TODAY)

        assert result.valid is False
        assert result.reason == "Coupon has expired"

    @pytest.mark.asyncio
    async def test_last_day_is_still_valid(self, test_session):
        await self.create(test_session, start_date=TODAY, end_date=TODAY)

        result = await CouponService.validate("DROP10", 20000, today=TODAY)

        assert result.valid is True

    @pytest.mark.asyncio
    async def test_usage_limit_reached(self, test_session):
        await self.create(test_session, usage_limit=1, usage_count=1)

        result = await CouponService.validate("DROP10", 20000, today=TODAY)

        assert result.valid is False
        assert result.discount == 0
        assert result.reason == "Coupon usage limit reached"

    @pytest.mark.asyncio
    async def test_minimum_order_amount(self, test_session):
        await self.create(test_session, min_order_amount=25000)

        result = await CouponService.validate("DROP10", 20000, today=TODAY)

        assert result.valid is False
        assert result.reason == "Minimum order amount is 25000"

    @pytest.mark.asyncio
    async def test_checks_run_in_order(self, test_session):
        # Expired AND exhausted AND below minimum: the date check wins
        await self.create(test_session, end_date=TODAY - timedelta(days=1), usage_limit=1, usage_count=1,
                          min_order_amount=25000)

        result = await CouponService.validate("DROP10", 20000, today=TODAY)

        assert result.reason == "Coupon has expired"


class TestRecordUsage:

    @pytest.mark.asyncio
    async def test_increments_counter_and_writes_usage_row(self, test_session, db_session_maker):
        # Arrange
        coupon_id = await CouponRepository.create(
            CouponDTO(code="FIXED500", type=CouponType.FIXED, value=500, usage_count=2), test_session
        )
        stored = await CouponRepository.get_active_by_code("FIXED500", test_session)

        # Act
        await CouponService.record_usage(stored, "LV-0001", "ada@example.com", 500, test_session)
        await test_session.commit()

        # Assert
        async with db_session_maker() as session:
            refreshed = await CouponRepository.get_active_by_code("FIXED500", session)
            usages = await CouponRepository.get_usage_by_order("LV-0001", session)
        assert refreshed.usage_count == 3
        assert [(u.coupon_id, u.customer_email, u.discount_amount) for u in usages] == [
            (coupon_id, "ada@example.com", 500)
        ]
