from decimal import Decimal

from pydantic import BaseModel, Field

from stockledger.models.enums import StockStatus


class StockAvailability(BaseModel):
    product_stock_id: int
    # None cuando el producto no existe (solo en la comprobacion masiva)
    sku: str | None
    available: bool
    current_quantity: int
    requested: int
    shortage: int


class AvailabilityCheckItem(BaseModel):
    product_stock_id: int
    quantity: int = Field(..., ge=1, examples=[3])


class BulkAvailabilityRequest(BaseModel):
    items: list[AvailabilityCheckItem] = Field(..., min_length=1, max_length=200)


class BulkAvailability(BaseModel):
    all_available: bool
    items: list[StockAvailability]
    unavailable_items: list[StockAvailability]


class ReorderSuggestion(BaseModel):
    product_stock_id: int
    sku: str
    product_name: str
    status: StockStatus
    current_quantity: int
    reorder_level: int
    suggested_quantity: int
    location: str | None


class InventorySummary(BaseModel):
    total_products: int
    total_units: int
    total_damaged_units: int
    inventory_value: Decimal
    by_status: dict[StockStatus, int]
