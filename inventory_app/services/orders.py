# inventory_app/services/orders.py
"""
Оформление заказа.

place_order — одна транзакция: проверка всех позиций → заказ + позиции →
списание остатков → запись в историю склада. Любая ошибка откатывает всё,
частичного списания снаружи не видно.
"""
from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
import logging
from typing import Dict, List, Optional, Sequence

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from inventory_app.db import atomic
from inventory_app.errors import (
    ConflictError, EmptyOrder, InsufficientStock, InvalidPrice, InvalidQuantity,
    OrderNotFound, OrderNumberConflict, ProductNotFound, ValidationError,
)
from inventory_app.models.order import Order, OrderItem
from inventory_app.models.product import Product
from inventory_app.models.user import User
from inventory_app.services import inventory_history, products as products_service
from inventory_app.utils.enums import HistoryAction, OrderStatus
from inventory_app.utils.tokens import make_order_number, utcnow

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


@dataclass
class OrderLineRequest:
    product_id: Optional[int]
    quantity: int
    # цена из запроса; None — берём текущую цену товара
    unit_price: Optional[Decimal] = None


def _with_items(query):
    return query.options(selectinload(Order.items).selectinload(OrderItem.product))


# ---------- выборки ----------

def get_order(db: Session, order_id: int, user: User) -> Optional[Order]:
    return _with_items(
        db.query(Order).filter(Order.id == order_id, Order.user_id == user.id)
    ).first()


def list_orders(db: Session, user: User) -> List[Order]:
    return _with_items(
        db.query(Order).filter(Order.user_id == user.id).order_by(Order.order_date.desc(), Order.id.desc())
    ).all()


def list_orders_by_status(db: Session, status: str, user: User) -> List[Order]:
    return _with_items(
        db.query(Order)
        .filter(Order.user_id == user.id, Order.status == status)
        .order_by(Order.order_date.desc(), Order.id.desc())
    ).all()


def list_recent_orders(db: Session, user: User, days: int) -> List[Order]:
    since = utcnow() - timedelta(days=days)
    return _with_items(
        db.query(Order)
        .filter(Order.user_id == user.id, Order.order_date >= since)
        .order_by(Order.order_date.desc(), Order.id.desc())
    ).all()


def count_orders_by_status(db: Session, user: User, status: str) -> int:
    return (
        db.query(func.count(Order.id))
        .filter(Order.user_id == user.id, Order.status == status)
        .scalar()
    ) or 0


# ---------- оформление ----------

def _unit_price(line: OrderLineRequest, product: Product) -> Decimal:
    if line.unit_price is None:
        return Decimal(str(product.price))
    try:
        price = Decimal(str(line.unit_price))
    except (InvalidOperation, ValueError):
        raise InvalidPrice(line.unit_price)
    if not price.is_finite() or price < 0:
        raise InvalidPrice(line.unit_price)
    # деньги храним с точностью до копейки — округляем сразу, чтобы итог сходился с позициями
    return price.quantize(CENT, rounding=ROUND_HALF_UP)


def _validate_lines(db: Session, lines: Sequence[OrderLineRequest], user: User):
    """
    Проверка позиций до любых изменений. Возвращает товары (под блокировкой),
    строки с ценами и суммарное количество по каждому товару.
    """
    locked = products_service.lock_owned(db, [l.product_id for l in lines], user)

    priced = []
    requested: Dict[int, int] = {}  # product_id -> сколько всего списать
    for line in lines:
        product = locked.get(line.product_id)
        if product is None:
            raise ProductNotFound(line.product_id)

        qty = line.quantity
        if isinstance(qty, bool) or not isinstance(qty, int) or qty <= 0:
            raise InvalidQuantity(qty)

        # один товар может встретиться в нескольких строках — проверяем сумму
        total_qty = requested.get(product.id, 0) + qty
        if product.quantity < total_qty:
            raise InsufficientStock(product.name, product.quantity, total_qty)
        requested[product.id] = total_qty

        priced.append((product, qty, _unit_price(line, product)))

    return locked, priced, requested


def _new_order_number(db: Session) -> str:
    number = make_order_number()
    exists = db.query(Order.id).filter(Order.order_number == number).first()
    if exists:
        raise OrderNumberConflict(number)
    return number


def place_order(db: Session, lines: Sequence[OrderLineRequest], user: User) -> Order:
    if not lines:
        raise EmptyOrder()

    order_number = None
    try:
        with atomic(db):
            locked, priced, requested = _validate_lines(db, lines, user)

            order_number = _new_order_number(db)
            order = Order(
                order_number=order_number,
                user_id=user.id,
                status=OrderStatus.PENDING.value,
                order_date=utcnow(),
            )
            for product, qty, unit_price in priced:
                item = OrderItem(product=product, quantity=qty, unit_price=unit_price)
                item.recompute_line()
                order.items.append(item)
            order.recompute_total()

            db.add(order)
            db.flush()

            # позиции + списание остатков, по одной записи в историю на товар
            for product_id, qty in requested.items():
                product = locked[product_id]
                previous = product.quantity
                products_service.decrement_quantity(db, product, qty)
                inventory_history.record(
                    db, product, user, HistoryAction.ORDER, previous, product.quantity,
                    f"Заказ {order.order_number}: списано {qty} шт.",
                )
    except IntegrityError as exc:
        logger.warning("Конфликт при сохранении заказа user=%s: %s", user.id, exc.orig)
        # номер заняли между проверкой и вставкой: SQLite "orders.order_number",
        # Postgres "ix_orders_order_number"
        if order_number and "order_number" in str(exc.orig):
            raise OrderNumberConflict(order_number) from exc
        raise ConflictError("Не удалось сохранить заказ, повторите попытку") from exc
    except InsufficientStock as exc:
        logger.info(
            "Заказ отклонён user=%s: '%s' на складе %s, запрошено %s",
            user.id, exc.product_name, exc.available, exc.requested,
        )
        raise

    order = get_order(db, order.id, user)
    logger.info(
        "Заказ создан: %s user=%s позиций=%s сумма=%s",
        order.order_number, user.id, len(order.items), order.total_amount,
    )
    return order


def place_order_with_retry(
    db: Session, lines: Sequence[OrderLineRequest], user: User, attempts: int = 3
) -> Order:
    """Повтор только при совпадении номера заказа; остальные ошибки — сразу наверх."""
    for attempt in range(1, attempts + 1):
        try:
            return place_order(db, lines, user)
        except OrderNumberConflict as exc:
            logger.warning("Номер заказа %s занят, попытка %s/%s", exc.order_number, attempt, attempts)
            if attempt == attempts:
                raise


def update_order_status(db: Session, order_id: int, status: str, user: User) -> Order:
    # переходы не проверяются: любой непустой статус записывается как есть
    status = (status or "").strip()
    if not status:
        raise ValidationError("Статус не может быть пустым")
    if len(status) > 20:
        raise ValidationError("Статус не длиннее 20 символов")

    order = get_order(db, order_id, user)
    if not order:
        raise OrderNotFound(order_id)

    with atomic(db):
        old_status = order.status
        order.status = status

    logger.info("Статус заказа %s: %s -> %s (user=%s)", order.order_number, old_status, status, user.id)
    return get_order(db, order_id, user)
