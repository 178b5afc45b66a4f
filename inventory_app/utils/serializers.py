# inventory_app/utils/serializers.py
from decimal import Decimal
from typing import Any, Dict, Optional

from inventory_app.models.inventory_history import InventoryHistory
from inventory_app.models.order import Order, OrderItem
from inventory_app.models.product import Product


def money(value) -> Optional[str]:
    """Деньги отдаём строкой с двумя знаками — без потерь на float."""
    if value is None:
        return None
    return f"{Decimal(str(value)):.2f}"


def _dt(value) -> Optional[str]:
    return value.isoformat() if value else None


def product_to_dict(p: Product) -> Dict[str, Any]:
    """Конвертирует объект Product в словарь для API"""
    return {
        "id": p.id,
        "sku": p.sku,
        "name": p.name,
        "description": p.description,
        "price": money(p.price),
        "quantity": p.quantity,
        "category": p.category,
        "createdAt": _dt(p.created_at),
        "updatedAt": _dt(p.updated_at),
    }


def product_summary(p: Product) -> Dict[str, Any]:
    return {
        "id": p.id,
        "sku": p.sku,
        "name": p.name,
        "price": money(p.price),
        "category": p.category,
    }


def order_item_to_dict(item: OrderItem) -> Dict[str, Any]:
    return {
        "id": item.id,
        "product": product_summary(item.product) if item.product else None,
        "quantity": item.quantity,
        "unitPrice": money(item.unit_price),
        "totalPrice": money(item.total_price),
    }


def order_to_dict(o: Order) -> Dict[str, Any]:
    return {
        "id": o.id,
        "orderNumber": o.order_number,
        "totalAmount": money(o.total_amount),
        "status": o.status,
        "orderDate": _dt(o.order_date),
        "orderItems": [order_item_to_dict(it) for it in o.items],
    }


def history_to_dict(h: InventoryHistory) -> Dict[str, Any]:
    product = h.product
    return {
        "id": h.id,
        "productId": h.product_id,
        "productName": product.name if product else None,
        "productSku": product.sku if product else None,
        "action": h.action,
        "previousQuantity": h.previous_quantity,
        "newQuantity": h.new_quantity,
        "delta": h.delta,
        "description": h.description,
        "createdAt": _dt(h.created_at),
    }
