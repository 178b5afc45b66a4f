# inventory_app/models/inventory_history.py
from typing import Optional

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index, event
from sqlalchemy.orm import relationship

from inventory_app.db import Base
from inventory_app.utils.tokens import utcnow

__all__ = ["InventoryHistory"]


class InventoryHistory(Base):
    __tablename__ = "inventory_history"
    __table_args__ = (
        Index("ix_history_product_created", "product_id", "created_at"),
        Index("ix_history_user_created", "user_id", "created_at"),
    )

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)

    # ADD | UPDATE | ORDER
    action = Column(String(20), nullable=False, index=True)

    previous_quantity = Column(Integer, nullable=True)
    new_quantity = Column(Integer, nullable=True)
    description = Column(String(500), nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)

    product = relationship("Product")
    user = relationship("User")

    @property
    def delta(self) -> Optional[int]:
        if self.previous_quantity is None or self.new_quantity is None:
            return None
        return self.new_quantity - self.previous_quantity


@event.listens_for(InventoryHistory, "before_update")
def _history_is_append_only(mapper, connection, target):
    raise ValueError("Записи истории склада не редактируются")
