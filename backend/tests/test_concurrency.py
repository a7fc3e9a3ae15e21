from uuid import uuid4

import pytest

from stockledger.db import session as db_session
from stockledger.models.audit_log import AuditLog
from stockledger.models.enums import StockStatus, TransactionType
from stockledger.models.product_stock import ProductStock
from stockledger.models.stock_transaction import StockTransaction
from stockledger.repositories import product_stock_repo
from stockledger.schemas.product_stock import ProductStockRequest
from stockledger.services import ledger_service
from stockledger.services.errors import ConcurrencyConflictError


def _request(sku: str, quantity: int = 10) -> ProductStockRequest:
    return ProductStockRequest(sku=sku, product_name="Sensor", quantity=quantity, reorder_level=2)


def _create(db) -> ProductStock:
    return product_stock_repo.create_stock(
        db,
        sku=f"SKU-{uuid4().hex[:8]}",
        product_name="Sensor",
        quantity=10,
        reorder_level=2,
        status=StockStatus.AVAILABLE,
    )


def test_compare_and_swap_rejects_stale_version(db):
    stock = _create(db)
    other = db_session.SessionLocal()
    try:
        stale = other.get(ProductStock, stock.id)
        assert stale.version == 1

        product_stock_repo.compare_and_swap(db, stock, expected_version=1, values={"quantity": 7})

        with pytest.raises(ConcurrencyConflictError) as excinfo:
            product_stock_repo.compare_and_swap(other, stale, expected_version=stale.version, values={"quantity": 3})
        assert excinfo.value.expected_version == 1
        assert excinfo.value.retryable is True
        other.rollback()
    finally:
        other.close()

    db.refresh(stock)
    assert stock.quantity == 7
    assert stock.version == 2


def test_delete_if_version_rejects_stale_version(db):
    stock = _create(db)
    product_stock_repo.compare_and_swap(db, stock, expected_version=1, values={"quantity": 8})

    with pytest.raises(ConcurrencyConflictError):
        product_stock_repo.delete_if_version(db, stock, expected_version=1)
    db.rollback()

    assert product_stock_repo.get(db, stock.id) is not None


def test_two_updates_from_same_version_only_one_wins(db):
    stock = ledger_service.create_stock(db, _request("RACE-1"))
    read_version = stock.version

    ledger_service.update_stock(db, stock.id, _request("RACE-1", quantity=20), expected_version=read_version)

    with pytest.raises(ConcurrencyConflictError):
        ledger_service.update_stock(db, stock.id, _request("RACE-1", quantity=30), expected_version=read_version)

    db.expire_all()
    refreshed = ledger_service.get_stock(db, stock.id)
    assert refreshed.quantity == 20
    assert refreshed.version == 2


def test_interleaved_adjustment_loses_the_race_without_partial_writes(db, monkeypatch):
    stock = ledger_service.create_stock(db, _request("RACE-2"))
    original_cas = product_stock_repo.compare_and_swap
    raced = {"done": False}

    def racing_cas(session, record, **kwargs):
        # Otra peticion confirma su escritura entre nuestra lectura y nuestro CAS
        if not raced["done"]:
            raced["done"] = True
            competitor = db_session.SessionLocal()
            try:
                ledger_service.adjust_stock(
                    competitor, record.id, transaction_type=TransactionType.STOCK_OUT, quantity=4
                )
            finally:
                competitor.close()
        return original_cas(session, record, **kwargs)

    monkeypatch.setattr(product_stock_repo, "compare_and_swap", racing_cas)

    with pytest.raises(ConcurrencyConflictError):
        ledger_service.adjust_stock(db, stock.id, transaction_type=TransactionType.STOCK_OUT, quantity=8)

    db.expire_all()
    refreshed = ledger_service.get_stock(db, stock.id)
    assert refreshed.quantity == 6
    assert refreshed.version == 2
    transactions = db.query(StockTransaction).filter(StockTransaction.product_stock_id == stock.id).all()
    assert [(t.quantity_before, t.quantity_after) for t in transactions] == [(10, 6)]
    assert db.query(AuditLog).filter(AuditLog.entity_id == stock.id).count() == 2


def test_stale_expected_version_is_rejected_before_any_write(db):
    stock = ledger_service.create_stock(db, _request("RACE-3"))
    ledger_service.adjust_stock(db, stock.id, transaction_type=TransactionType.STOCK_IN, quantity=1)

    with pytest.raises(ConcurrencyConflictError):
        ledger_service.record_damaged_goods(db, stock.id, damaged_quantity=1, expected_version=1)
    with pytest.raises(ConcurrencyConflictError):
        ledger_service.delete_stock(db, stock.id, expected_version=1)

    db.expire_all()
    refreshed = ledger_service.get_stock(db, stock.id)
    assert refreshed.damaged_quantity == 0
    assert refreshed.version == 2
