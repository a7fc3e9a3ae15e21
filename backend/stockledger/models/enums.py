import enum


class StockStatus(enum.Enum):
    AVAILABLE = "AVAILABLE"
    LOW_STOCK = "LOW_STOCK"
    OUT_OF_STOCK = "OUT_OF_STOCK"
    DISCONTINUED = "DISCONTINUED"


class TransactionType(enum.Enum):
    STOCK_IN = "STOCK_IN"
    STOCK_OUT = "STOCK_OUT"
    ADJUSTMENT = "ADJUSTMENT"
    DAMAGE = "DAMAGE"
    RETURN = "RETURN"
    TRANSFER = "TRANSFER"


class AuditAction(enum.Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    STOCK_ADJUSTMENT = "STOCK_ADJUSTMENT"
    DAMAGED_GOODS = "DAMAGED_GOODS"


class EntityType(enum.Enum):
    PRODUCT_STOCK = "ProductStock"
