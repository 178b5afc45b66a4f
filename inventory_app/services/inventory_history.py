# inventory_app/services/inventory_history.py
"""Журнал движения товара: только добавление и выборки по владельцу."""
from datetime import timedelta
from typing import List, Optional

from sqlalchemy.orm import Session

from inventory_app.models.inventory_history import InventoryHistory
from inventory_app.models.product import Product
from inventory_app.models.user import User
from inventory_app.utils.enums import HistoryAction
from inventory_app.utils.tokens import utcnow


def record(
    db: Session,
    product: Product,
    user: User,
    action,
    previous_quantity: Optional[int],
    new_quantity: Optional[int],
    description: str,
) -> InventoryHistory:
    """
    Добавляет запись в журнал в рамках текущей транзакции.
    Коммит делает вызывающий: запись живёт или умирает вместе с изменением остатка.
    """
    entry = InventoryHistory(
        product_id=product.id,
        user_id=user.id,
        action=action.value if isinstance(action, HistoryAction) else str(action),
        previous_quantity=previous_quantity,
        new_quantity=new_quantity,
        description=(description or "")[:500] or None,
        created_at=utcnow(),
    )
    db.add(entry)
    return entry


def _newest_first(query):
    return query.order_by(InventoryHistory.created_at.desc(), InventoryHistory.id.desc())


def list_history(db: Session, user: User, limit: Optional[int] = None) -> List[InventoryHistory]:
    q = _newest_first(db.query(InventoryHistory).filter(InventoryHistory.user_id == user.id))
    if limit:
        q = q.limit(limit)
    return q.all()


def list_product_history(db: Session, product: Product, user: User) -> List[InventoryHistory]:
    return _newest_first(
        db.query(InventoryHistory).filter(
            InventoryHistory.user_id == user.id,
            InventoryHistory.product_id == product.id,
        )
    ).all()


def list_history_by_action(db: Session, action: str, user: User) -> List[InventoryHistory]:
    return _newest_first(
        db.query(InventoryHistory).filter(
            InventoryHistory.user_id == user.id,
            InventoryHistory.action == action.strip().upper(),
        )
    ).all()


def list_recent_history(db: Session, user: User, days: int) -> List[InventoryHistory]:
    since = utcnow() - timedelta(days=days)
    return _newest_first(
        db.query(InventoryHistory).filter(
            InventoryHistory.user_id == user.id,
            InventoryHistory.created_at >= since,
        )
    ).all()
