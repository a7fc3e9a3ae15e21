from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from stockledger.models.enums import StockStatus


class ProductStockRequest(BaseModel):
    sku: str = Field(..., min_length=1, max_length=100, examples=["SKU-001"])
    product_name: str = Field(..., min_length=1, max_length=200, examples=["Sensor de temperatura"])
    quantity: int = Field(..., ge=0, examples=[10])
    reorder_level: int = Field(..., ge=0, examples=[5])
    unit_price: Decimal | None = Field(None, ge=0, max_digits=10, decimal_places=2, examples=["19.99"])
    location: str | None = Field(None, max_length=100, examples=["ALM-CENTRAL"])
    # Si se omite se conserva (o se inicializa a AVAILABLE) y luego se recalcula
    status: StockStatus | None = None
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "sku": "SKU-001",
                "product_name": "Sensor de temperatura",
                "quantity": 10,
                "reorder_level": 5,
                "unit_price": "19.99",
                "location": "ALM-CENTRAL",
            }
        }
    )


class ProductStockResponse(BaseModel):
    id: int
    sku: str
    product_name: str
    quantity: int
    reorder_level: int
    damaged_quantity: int
    unit_price: Decimal | None
    location: str | None
    status: StockStatus
    version: int
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "example": {
                "id": 7,
                "sku": "SKU-001",
                "product_name": "Sensor de temperatura",
                "quantity": 10,
                "reorder_level": 5,
                "damaged_quantity": 0,
                "unit_price": "19.99",
                "location": "ALM-CENTRAL",
                "status": "AVAILABLE",
                "version": 1,
                "created_at": "2026-02-17T10:00:00Z",
                "updated_at": "2026-02-17T10:10:00Z",
            }
        },
    )


class StockSnapshot(BaseModel):
    """Imagen inmutable de un registro de stock, usada como old/new en auditoria."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: int
    sku: str
    product_name: str
    quantity: int
    reorder_level: int
    damaged_quantity: int
    unit_price: Decimal | None = None
    location: str | None = None
    status: StockStatus
    version: int
    created_at: datetime | None = None
    updated_at: datetime | None = None
