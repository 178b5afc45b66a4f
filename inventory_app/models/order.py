# inventory_app/models/order.py
from typing import List
from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, Index, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from inventory_app.db import Base
from inventory_app.utils.enums import OrderStatus
from inventory_app.utils.tokens import utcnow

__all__ = ["Order", "OrderItem"]


class Order(Base):
    __tablename__ = "orders"
    __table_args__ = (
        Index("ix_orders_user_date", "user_id", "order_date"),
        Index("ix_orders_user_status", "user_id", "status"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    order_number: Mapped[str] = mapped_column(String(20), unique=True, nullable=False, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)

    total_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0.00"))

    # PENDING ставит создание заказа, дальше статус меняется снаружи
    status: Mapped[str] = mapped_column(String(20), default=OrderStatus.PENDING.value)
    order_date: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True)

    items: Mapped[List["OrderItem"]] = relationship(
        "OrderItem", back_populates="order", cascade="all, delete-orphan", order_by="OrderItem.id"
    )

    # Хелпер: пересчитать итог
    def recompute_total(self):
        self.total_amount = sum((x.total_price for x in self.items), Decimal("0"))


class OrderItem(Base):
    __tablename__ = "order_items"
    __table_args__ = (
        Index("ix_order_items_order_product", "order_id", "product_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    order_id: Mapped[int] = mapped_column(ForeignKey("orders.id"), nullable=False)
    # без ondelete: товар из заказа удалить нельзя
    product_id: Mapped[int] = mapped_column(ForeignKey("products.id"), nullable=False)

    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    # цена фиксируется на момент заказа и от текущей цены товара не зависит
    unit_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    total_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    order: Mapped["Order"] = relationship("Order", back_populates="items")
    product = relationship("Product")

    # Хелпер: пересчитать сумму строки
    def recompute_line(self):
        self.total_price = Decimal(str(self.unit_price)) * int(self.quantity)
