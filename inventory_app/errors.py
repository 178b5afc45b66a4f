# inventory_app/errors.py
"""
Ошибки бизнес-логики склада и заказов.

Каждая ошибка знает свой HTTP-код: обработчик в main.py превращает её
в JSON {"detail": ...} без try/except в каждом роутере.
"""
from typing import Any, Dict, Optional


class InventoryError(Exception):
    status_code = 500
    default_message = "Ошибка обработки запроса"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"detail": self.message}


# ---------- 400: ошибки запроса ----------
class ValidationError(InventoryError):
    status_code = 400
    default_message = "Некорректный запрос"


class EmptyOrder(ValidationError):
    default_message = "Заказ должен содержать хотя бы одну позицию"


class InvalidQuantity(ValidationError):
    def __init__(self, quantity: Any):
        self.quantity = quantity
        super().__init__(f"Некорректное количество: {quantity}. Нужно целое число больше нуля.")


class InvalidPrice(ValidationError):
    def __init__(self, price: Any):
        self.price = price
        super().__init__(f"Некорректная цена: {price}")


# ---------- 404: нет или чужое — для клиента одно и то же ----------
class NotFoundOrForbidden(InventoryError):
    status_code = 404
    default_message = "Не найдено"


class ProductNotFound(NotFoundOrForbidden):
    def __init__(self, product_id: Any = None):
        self.product_id = product_id
        super().__init__("Товар не найден")


class OrderNotFound(NotFoundOrForbidden):
    def __init__(self, order_id: Any = None):
        self.order_id = order_id
        super().__init__("Заказ не найден")


# ---------- остатки ----------
class InsufficientStock(InventoryError):
    status_code = 400

    def __init__(self, product_name: str, available: int, requested: int):
        self.product_name = product_name
        self.available = available
        self.requested = requested
        super().__init__(
            f"Недостаточно товара '{product_name}'. На складе {available}, требуется {requested}."
        )

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            "product": self.product_name,
            "available": self.available,
            "requested": self.requested,
        })
        return data


class NegativeStock(InsufficientStock):
    """Остаток ушёл бы в минус при списании (повторная проверка на уровне UPDATE)."""


# ---------- 409: конфликты ----------
class ConflictError(InventoryError):
    status_code = 409
    default_message = "Конфликт данных, повторите попытку"


class OrderNumberConflict(ConflictError):
    def __init__(self, order_number: str):
        self.order_number = order_number
        super().__init__(f"Номер заказа {order_number} уже занят, повторите попытку")


class DuplicateSku(ConflictError):
    def __init__(self, sku: str):
        self.sku = sku
        super().__init__(f"Товар с артикулом '{sku}' уже существует")


class ReferentialIntegrityError(InventoryError):
    status_code = 409
    default_message = "Есть связанные записи, сначала удалите их"


class ProductInUse(ReferentialIntegrityError):
    default_message = "Нельзя удалить товар: он есть в заказах. Сначала удалите связанные заказы."


# ---------- 500: инфраструктура ----------
class InfrastructureError(InventoryError):
    status_code = 500
    default_message = "Внутренняя ошибка сервера"
