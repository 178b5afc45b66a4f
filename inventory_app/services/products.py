# inventory_app/services/products.py
"""
Каталог товаров пользователя.

Все выборки и изменения фильтруются по владельцу: чужой товар для вызывающего
неотличим от несуществующего. Каждое изменение количества пишется в журнал
(inventory_history) в той же транзакции.
"""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
import logging
from typing import Dict, Iterable, List, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from inventory_app import config
from inventory_app.db import atomic
from inventory_app.errors import (
    DuplicateSku, InvalidPrice, InvalidQuantity, NegativeStock, ProductInUse,
    ProductNotFound, ValidationError,
)
from inventory_app.models.inventory_history import InventoryHistory
from inventory_app.models.order import OrderItem
from inventory_app.models.product import Product
from inventory_app.models.user import User
from inventory_app.services import inventory_history
from inventory_app.utils.enums import HistoryAction
from inventory_app.utils.tokens import utcnow

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("sku", "name", "description", "price", "quantity", "category")


# ---------- выборки ----------

def find_owned(db: Session, product_id: int, user: User) -> Optional[Product]:
    if product_id is None:
        return None
    return (
        db.query(Product)
        .filter(Product.id == product_id, Product.user_id == user.id)
        .first()
    )


def get_owned(db: Session, product_id: int, user: User) -> Product:
    product = find_owned(db, product_id, user)
    if not product:
        raise ProductNotFound(product_id)
    return product


def lock_owned(db: Session, product_ids: Iterable[int], user: User) -> Dict[int, Product]:
    """
    Товары владельца под блокировкой строк (SELECT ... FOR UPDATE).
    Порядок по id — чтобы параллельные заказы брали блокировки одинаково.
    """
    ids = sorted({pid for pid in product_ids if pid is not None})
    if not ids:
        return {}
    rows = (
        db.query(Product)
        .filter(Product.user_id == user.id, Product.id.in_(ids))
        .order_by(Product.id)
        .with_for_update()
        .all()
    )
    return {p.id: p for p in rows}


def find_by_sku(db: Session, sku: str, user: User) -> Optional[Product]:
    return (
        db.query(Product)
        .filter(Product.sku == sku, Product.user_id == user.id)
        .first()
    )


def list_products(db: Session, user: User) -> List[Product]:
    return db.query(Product).filter(Product.user_id == user.id).order_by(Product.name).all()


def search_products(db: Session, name: str, user: User) -> List[Product]:
    name = (name or "").strip()
    if not name:
        return []
    return (
        db.query(Product)
        .filter(Product.user_id == user.id, Product.name.ilike(f"%{name}%"))
        .order_by(Product.name)
        .all()
    )


def list_by_category(db: Session, category: str, user: User) -> List[Product]:
    return (
        db.query(Product)
        .filter(Product.user_id == user.id, Product.category == category)
        .order_by(Product.name)
        .all()
    )


def list_low_stock(db: Session, user: User, threshold: Optional[int] = None) -> List[Product]:
    if threshold is None:
        threshold = config.LOW_STOCK_THRESHOLD
    return (
        db.query(Product)
        .filter(Product.user_id == user.id, Product.quantity <= threshold)
        .order_by(Product.quantity, Product.name)
        .all()
    )


# ---------- проверки ----------

def _dec(val) -> Decimal:
    """Парсинг цены с поддержкой запятой."""
    if isinstance(val, Decimal):
        return val
    try:
        return Decimal(str(val).replace(",", ".").strip())
    except (InvalidOperation, ValueError):
        raise InvalidPrice(val)


def _clean(data: dict) -> dict:
    sku = (data.get("sku") or "").strip()
    name = (data.get("name") or "").strip()
    if not sku:
        raise ValidationError("Артикул (SKU) обязателен")
    if not name:
        raise ValidationError("Название товара обязательно")

    price = _dec(data.get("price"))
    if not price.is_finite() or price <= 0:
        raise InvalidPrice(data.get("price"))

    quantity = data.get("quantity")
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 0:
        raise InvalidQuantity(quantity)

    return {
        "sku": sku,
        "name": name,
        "description": (data.get("description") or "").strip() or None,
        "price": price.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP),
        "quantity": quantity,
        "category": (data.get("category") or "").strip() or None,
    }


def _sku_taken(db: Session, sku: str, user: User, exclude_id: Optional[int] = None) -> bool:
    q = db.query(Product.id).filter(Product.sku == sku, Product.user_id == user.id)
    if exclude_id:
        q = q.filter(Product.id != exclude_id)
    return q.first() is not None


# ---------- изменения ----------

def create_product(db: Session, data: dict, user: User) -> Product:
    fields = _clean(data)
    if _sku_taken(db, fields["sku"], user):
        raise DuplicateSku(fields["sku"])

    try:
        with atomic(db):
            product = Product(user_id=user.id, **fields)
            db.add(product)
            db.flush()  # чтобы появился product.id
            inventory_history.record(
                db, product, user, HistoryAction.ADD, 0, product.quantity,
                f"Товар создан: {product.name}",
            )
    except IntegrityError as exc:
        raise DuplicateSku(fields["sku"]) from exc

    db.refresh(product)
    logger.info("Товар создан: id=%s sku=%s user=%s qty=%s", product.id, product.sku, user.id, product.quantity)
    return product


def update_product(db: Session, product_id: int, data: dict, user: User) -> Product:
    fields = _clean(data)
    product = get_owned(db, product_id, user)
    if fields["sku"] != product.sku and _sku_taken(db, fields["sku"], user, exclude_id=product.id):
        raise DuplicateSku(fields["sku"])

    try:
        with atomic(db):
            previous_quantity = product.quantity
            for key in EDITABLE_FIELDS:
                setattr(product, key, fields[key])
            db.flush()
            inventory_history.record(
                db, product, user, HistoryAction.UPDATE, previous_quantity, product.quantity,
                f"Товар обновлён: {product.name}",
            )
    except IntegrityError as exc:
        raise DuplicateSku(fields["sku"]) from exc

    db.refresh(product)
    logger.info("Товар обновлён: id=%s user=%s qty %s -> %s", product.id, user.id, previous_quantity, product.quantity)
    return product


def update_product_quantity(db: Session, product_id: int, quantity, user: User) -> Product:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 0:
        raise InvalidQuantity(quantity)
    product = get_owned(db, product_id, user)

    with atomic(db):
        previous_quantity = product.quantity
        product.quantity = quantity
        db.flush()
        inventory_history.record(
            db, product, user, HistoryAction.UPDATE, previous_quantity, quantity,
            f"Количество изменено: {product.name}",
        )

    db.refresh(product)
    logger.info("Остаток изменён: id=%s user=%s %s -> %s", product.id, user.id, previous_quantity, quantity)
    return product


def decrement_quantity(db: Session, product: Product, amount: int) -> Product:
    """
    Списание остатка условным UPDATE: quantity уменьшается только если её хватает.
    Проверка и запись — одна атомарная операция в БД, гонку «прочитал-проверил-записал» не пропускает.
    Коммит — на вызывающем.
    """
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidQuantity(amount)

    result = db.execute(
        update(Product)
        .where(Product.id == product.id, Product.quantity >= amount)
        .values(quantity=Product.quantity - amount, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        db.refresh(product)
        raise NegativeStock(product.name, product.quantity, amount)

    db.refresh(product)
    return product


def delete_product(db: Session, product_id: int, user: User) -> None:
    """
    Сначала история товара, потом сам товар. Если товар есть в заказах —
    ProductInUse и ничего не удаляется.
    """
    product = get_owned(db, product_id, user)

    in_orders = db.query(OrderItem.id).filter(OrderItem.product_id == product.id).first()
    if in_orders:
        db.rollback()
        raise ProductInUse()

    try:
        with atomic(db):
            db.query(InventoryHistory).filter(
                InventoryHistory.product_id == product.id
            ).delete(synchronize_session=False)
            db.delete(product)
            db.flush()
    except IntegrityError as exc:
        # заказ мог появиться между проверкой и удалением
        raise ProductInUse() from exc

    logger.info("Товар удалён: id=%s user=%s", product_id, user.id)
