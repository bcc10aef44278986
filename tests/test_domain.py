"""
Tests for money handling, basket validation and the error taxonomy.
"""
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from order_placement.domain import (
    MAX_ID,
    BasketEntry,
    as_utc,
    is_valid_id,
    normalize_basket,
    quantize_money,
)
from order_placement.exceptions import (
    CustomerNotFoundError,
    FatalError,
    InsufficientStockError,
    InvalidArgumentError,
    NotFoundError,
    RetryableError,
    StorageUnavailableError,
)


class TestQuantizeMoney:
    @pytest.mark.unit
    def test_two_places(self) -> None:
        assert str(quantize_money(Decimal("150") * 2)) == "300.00"
        assert quantize_money("19.999") == Decimal("20.00")
        assert quantize_money(7) == Decimal("7.00")

    @pytest.mark.unit
    def test_half_up(self) -> None:
        assert quantize_money(Decimal("0.005")) == Decimal("0.01")
        assert quantize_money(Decimal("2.345")) == Decimal("2.35")

    @pytest.mark.unit
    def test_rejects_float(self) -> None:
        with pytest.raises(TypeError):
            quantize_money(0.1)  # type: ignore[arg-type]


class TestNormalizeBasket:
    """Basket shape validation."""

    @pytest.mark.unit
    def test_mappings_and_entries_keep_order(self) -> None:
        entries = normalize_basket(
            [
                {"product_id": 3, "quantity": 2},
                BasketEntry(product_id=1, quantity=1),
                {"product_id": 3, "quantity": 1},
            ]
        )

        assert entries == (
            BasketEntry(product_id=3, quantity=2),
            BasketEntry(product_id=1, quantity=1),
            BasketEntry(product_id=3, quantity=1),
        )

    @pytest.mark.unit
    def test_accepts_generator(self) -> None:
        entries = normalize_basket({"product_id": i, "quantity": 1} for i in (1, 2))

        assert [e.product_id for e in entries] == [1, 2]

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "basket, fragment",
        [
            (None, "empty"),
            ([], "empty"),
            ([{"product_id": 1, "quantity": 0}], "positive"),
            ([{"product_id": 1, "quantity": -1}], "positive"),
            ([{"product_id": 1, "quantity": False}], "positive"),
            ([{"product_id": True, "quantity": 1}], "product_id"),
            ([{"quantity": 1}], "product_id and quantity"),
            (["1x laptop"], "unsupported"),
            (5, "sequence"),
            ([{"product_id": 0, "quantity": 1}], "out of range"),
            ([{"product_id": 2**31, "quantity": 1}], "out of range"),
        ],
    )
    def test_rejects(self, basket: object, fragment: str) -> None:
        with pytest.raises(InvalidArgumentError, match=fragment):
            normalize_basket(basket)  # type: ignore[arg-type]

    @pytest.mark.unit
    def test_reports_entry_position(self) -> None:
        with pytest.raises(InvalidArgumentError, match="entry 1"):
            normalize_basket([{"product_id": 1, "quantity": 1}, {"product_id": 2, "quantity": 0}])


class TestIdsAndTimestamps:

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "value, valid",
        [(1, True), (MAX_ID, True), (0, False), (MAX_ID + 1, False), (2**63, False), (True, False), ("1", False)],
    )
    def test_is_valid_id(self, value: object, valid: bool) -> None:
        assert is_valid_id(value) is valid

    @pytest.mark.unit
    def test_naive_timestamp_becomes_utc(self) -> None:
        value = as_utc(datetime(2024, 1, 15, 10, 30))

        assert value.utcoffset() == timedelta(0)
        assert value.hour == 10

    @pytest.mark.unit
    def test_aware_timestamp_is_converted(self) -> None:
        value = as_utc(datetime(2024, 1, 15, 12, 30, tzinfo=timezone(timedelta(hours=2))))

        assert value == datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)
        assert value.tzinfo is timezone.utc


class TestErrorTaxonomy:
    """Error codes, statuses and retryability."""

    @pytest.mark.unit
    def test_to_dict(self) -> None:
        error = InsufficientStockError(1, requested=999, available=10)

        assert error.to_dict() == {
            "error": {
                "code": "insufficient_stock",
                "message": "Insufficient stock for product 1: requested 999, available 10",
                "type": "InsufficientStockError",
            }
        }
        assert error.metadata["available"] == 10

    @pytest.mark.unit
    def test_message_without_counts(self) -> None:
        assert str(InsufficientStockError(4)) == "Insufficient stock for product 4"

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "error, status, retryable",
        [
            (CustomerNotFoundError(9), 404, False),
            (InvalidArgumentError("bad"), 422, False),
            (InsufficientStockError(1), 409, False),
            (RetryableError("deadlock detected"), 503, True),
            (StorageUnavailableError("down"), 503, False),
        ],
    )
    def test_status_and_retryability(self, error: Exception, status: int, retryable: bool) -> None:
        assert error.http_status == status  # type: ignore[attr-defined]
        assert error.retryable is retryable  # type: ignore[attr-defined]

    @pytest.mark.unit
    def test_hierarchy(self) -> None:
        assert issubclass(CustomerNotFoundError, NotFoundError)
        assert FatalError is StorageUnavailableError
