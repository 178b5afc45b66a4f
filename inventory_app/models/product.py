# inventory_app/models/product.py
from typing import Optional
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint, DateTime, ForeignKey, Index, Integer, Numeric, String, UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from inventory_app.db import Base
from inventory_app.utils.tokens import utcnow

__all__ = ["Product"]


class Product(Base):
    __tablename__ = "products"
    __table_args__ = (
        # артикул уникален в пределах владельца
        UniqueConstraint("sku", "user_id", name="uq_products_sku_user"),
        CheckConstraint("quantity >= 0", name="ck_products_quantity_non_negative"),
        Index("ix_products_user_category", "user_id", "category"),
        Index("ix_products_user_name", "user_id", "name"),
        Index("ix_products_user_quantity", "user_id", "quantity"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    # владелец не меняется после создания
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)

    sku: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    category: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, index=True)

    user = relationship("User")
