from datetime import datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, DateTime, Enum, Index, Integer, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column

from stockledger.db.base import Base
from stockledger.models.enums import StockStatus


class ProductStock(Base):
    """
    Estado actual (mutable) del stock de un producto.

    `version` es el token de concurrencia optimista: solo se escribe con
    UPDATE ... WHERE version = :leida (ver product_stock_repo.compare_and_swap).
    """

    __tablename__ = "product_stock"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    sku: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    product_name: Mapped[str] = mapped_column(String(200), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    reorder_level: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    damaged_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    unit_price: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    location: Mapped[str | None] = mapped_column(String(100), nullable=True)
    status: Mapped[StockStatus] = mapped_column(
        Enum(StockStatus), nullable=False, default=StockStatus.AVAILABLE
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )

    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_product_stock_quantity"),
        CheckConstraint("reorder_level >= 0", name="ck_product_stock_reorder_level"),
        CheckConstraint("damaged_quantity >= 0", name="ck_product_stock_damaged_quantity"),
        Index("ix_product_stock_status", "status"),
        # En SQLite un id borrado no se reutiliza: el historico sigue siendo del producto original
        {"sqlite_autoincrement": True},
    )
