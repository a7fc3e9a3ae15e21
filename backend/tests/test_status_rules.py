from hypothesis import given, strategies as st

from stockledger.models.enums import StockStatus, TransactionType
from stockledger.services.ledger_service import derive_status, is_stock_out, signed_delta


quantities = st.integers(min_value=0, max_value=10_000)
statuses = st.sampled_from(list(StockStatus))


@given(quantity=quantities, reorder_level=quantities, current=statuses)
def test_derived_status_is_function_of_quantity_and_reorder_level(quantity, reorder_level, current):
    status = derive_status(quantity, reorder_level, current)

    if quantity == 0:
        assert status == StockStatus.OUT_OF_STOCK
    elif quantity <= reorder_level:
        assert status == StockStatus.LOW_STOCK
    elif current == StockStatus.DISCONTINUED:
        assert status == StockStatus.DISCONTINUED
    else:
        assert status == StockStatus.AVAILABLE


@given(quantity=st.integers(min_value=1, max_value=10_000), reorder_level=quantities)
def test_discontinued_only_survives_above_reorder_level(quantity, reorder_level):
    status = derive_status(quantity, reorder_level, StockStatus.DISCONTINUED)
    assert (status == StockStatus.DISCONTINUED) == (quantity > reorder_level)


@given(transaction_type=st.sampled_from(list(TransactionType)), quantity=st.integers(min_value=1, max_value=1000))
def test_signed_delta_magnitude_matches_quantity(transaction_type, quantity):
    delta = signed_delta(transaction_type, quantity)
    assert abs(delta) == quantity
    assert (delta < 0) == is_stock_out(transaction_type)


def test_adjustment_is_always_additive():
    assert signed_delta(TransactionType.ADJUSTMENT, 4) == 4
    assert not is_stock_out(TransactionType.ADJUSTMENT)


def test_example_quantity_equal_to_reorder_level_is_low_stock():
    assert derive_status(5, 5, StockStatus.AVAILABLE) == StockStatus.LOW_STOCK
