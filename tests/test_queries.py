"""
Tests for the total-spent query.
"""
from decimal import Decimal

import pytest

from order_placement.core.order_service import OrderPlacementService
from order_placement.core.queries import TotalSpentQuery
from order_placement.exceptions import InsufficientStockError


class TestTotalSpent:
    """Sum of order totals per customer."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_customer_without_orders(self, total_spent_query: TotalSpentQuery) -> None:
        total = await total_spent_query.get_total_spent(2)

        assert total == Decimal("0.00")
        assert str(total) == "0.00"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_customer_with_orders(self, total_spent_query: TotalSpentQuery) -> None:
        """Alice: 1350.00 + 180.00."""
        assert await total_spent_query.get_total_spent(1) == Decimal("1530.00")
        assert await total_spent_query.get_total_spent(3) == Decimal("1750.00")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unknown_customer_is_zero(self, total_spent_query: TotalSpentQuery) -> None:
        assert await total_spent_query.get_total_spent(999) == Decimal("0.00")

    @pytest.mark.unit
    @pytest.mark.asyncio
    @pytest.mark.parametrize("customer_id", [0, 2**31, 2**63])
    async def test_id_outside_column_range_is_zero(
        self, total_spent_query: TotalSpentQuery, customer_id: int
    ) -> None:
        assert await total_spent_query.get_total_spent(customer_id) == Decimal("0.00")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_grows_with_placed_order(
        self, service: OrderPlacementService, total_spent_query: TotalSpentQuery
    ) -> None:
        await service.place_order(2, [{"product_id": 1, "quantity": 1}, {"product_id": 3, "quantity": 2}])
        await service.place_order(2, [{"product_id": 6, "quantity": 1}])

        assert await total_spent_query.get_total_spent(2) == Decimal("1590.00")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_failed_placement_does_not_count(
        self, service: OrderPlacementService, total_spent_query: TotalSpentQuery
    ) -> None:
        with pytest.raises(InsufficientStockError):
            await service.place_order(2, [{"product_id": 6, "quantity": 1}, {"product_id": 5, "quantity": 50}])

        assert await total_spent_query.get_total_spent(2) == Decimal("0.00")
