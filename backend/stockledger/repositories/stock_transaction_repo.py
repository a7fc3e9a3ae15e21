from datetime import datetime
from typing import Iterable, Tuple

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from stockledger.models.enums import TransactionType
from stockledger.models.stock_transaction import StockTransaction

# Solo alta y lectura: las transacciones no se modifican ni se borran.


def get(db: Session, transaction_id: int) -> StockTransaction | None:
    return db.get(StockTransaction, transaction_id)


def create_transaction(
    db: Session,
    *,
    product_stock_id: int,
    transaction_type: TransactionType,
    quantity: int,
    quantity_before: int,
    quantity_after: int,
    stock_version: int,
    transaction_date: datetime,
    reason: str | None = None,
    reference: str | None = None,
    commit: bool = True,
) -> StockTransaction:
    transaction = StockTransaction(
        product_stock_id=product_stock_id,
        transaction_type=transaction_type,
        quantity=quantity,
        quantity_before=quantity_before,
        quantity_after=quantity_after,
        stock_version=stock_version,
        reason=reason,
        reference=reference,
        transaction_date=transaction_date,
    )
    db.add(transaction)

    if commit:
        db.commit()
        db.refresh(transaction)
    else:
        db.flush()

    return transaction


def list_for_product(db: Session, product_stock_id: int) -> Iterable[StockTransaction]:
    stmt = (
        select(StockTransaction)
        .where(StockTransaction.product_stock_id == product_stock_id)
        .order_by(StockTransaction.transaction_date.desc(), StockTransaction.id.desc())
    )
    return db.scalars(stmt).all()


def list_transactions(
    db: Session,
    *,
    product_stock_id: int | None = None,
    transaction_type: TransactionType | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    limit: int = 50,
    offset: int = 0,
) -> Tuple[Iterable[StockTransaction], int]:
    filters = []
    if product_stock_id is not None:
        filters.append(StockTransaction.product_stock_id == product_stock_id)
    if transaction_type is not None:
        filters.append(StockTransaction.transaction_type == transaction_type)
    if date_from is not None:
        filters.append(StockTransaction.transaction_date >= date_from)
    if date_to is not None:
        filters.append(StockTransaction.transaction_date <= date_to)

    stmt = (
        select(StockTransaction)
        .where(*filters)
        .order_by(StockTransaction.transaction_date.desc(), StockTransaction.id.desc())
    )
    total = db.scalar(select(func.count()).select_from(stmt.subquery())) or 0
    items = db.scalars(stmt.offset(offset).limit(limit)).all()
    return items, total
