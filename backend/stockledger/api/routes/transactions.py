from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from stockledger.db.deps import get_db
from stockledger.models.enums import TransactionType
from stockledger.schemas.transaction import StockTransactionListResponse
from stockledger.services import ledger_service


router = APIRouter(prefix="/api/v1/transactions", tags=["transactions"])


@router.get("", response_model=StockTransactionListResponse)
def list_transactions(
    db: Session = Depends(get_db),
    product_stock_id: int | None = Query(None),
    transaction_type: TransactionType | None = Query(None),
    date_from: datetime | None = Query(None),
    date_to: datetime | None = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
):
    items, total = ledger_service.list_transactions(
        db,
        product_stock_id=product_stock_id,
        transaction_type=transaction_type,
        date_from=date_from,
        date_to=date_to,
        limit=limit,
        offset=offset,
    )
    return StockTransactionListResponse(items=items, total=total, limit=limit, offset=offset)
