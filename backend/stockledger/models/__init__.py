from stockledger.models.audit_log import AuditLog
from stockledger.models.product_stock import ProductStock
from stockledger.models.stock_transaction import StockTransaction

__all__ = ["AuditLog", "ProductStock", "StockTransaction"]
