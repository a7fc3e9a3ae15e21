from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from stockledger.models.enums import TransactionType


class StockAdjustmentRequest(BaseModel):
    transaction_type: TransactionType = Field(examples=["STOCK_IN"])
    quantity: int = Field(..., ge=1, examples=[5])
    reason: str | None = Field(None, max_length=500)
    reference: str | None = Field(None, max_length=100)
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "transaction_type": "STOCK_IN",
                "quantity": 5,
                "reason": "Recepcion de proveedor",
                "reference": "PO-2026-001",
            }
        }
    )


class DamagedGoodsRequest(BaseModel):
    damaged_quantity: int = Field(..., ge=1, examples=[2])
    reason: str | None = Field(None, max_length=500)
    reference: str | None = Field(None, max_length=100)


class StockTransactionResponse(BaseModel):
    id: int
    product_stock_id: int
    transaction_type: TransactionType
    quantity: int
    quantity_before: int
    quantity_after: int
    stock_version: int
    reason: str | None
    reference: str | None
    transaction_date: datetime
    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "example": {
                "id": 100,
                "product_stock_id": 7,
                "transaction_type": "STOCK_OUT",
                "quantity": 5,
                "quantity_before": 10,
                "quantity_after": 5,
                "stock_version": 4,
                "reason": "Venta",
                "reference": "ORD-42",
                "transaction_date": "2026-02-17T10:20:00Z",
            }
        },
    )


class StockTransactionListResponse(BaseModel):
    items: list[StockTransactionResponse]
    total: int
    limit: int
    offset: int
