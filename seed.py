# seed.py — пересоздать БД и заполнить демо-данными
from decimal import Decimal

from sqlalchemy.orm import configure_mappers

from inventory_app.db import Base, engine, SessionLocal
import inventory_app.models  # noqa: F401  важно: подтягиваем все модели
from inventory_app.models.user import User
from inventory_app.services import products as products_service
from inventory_app.services import orders as orders_service
from inventory_app.services.orders import OrderLineRequest
from inventory_app.utils.security import hash_password


DEMO_USERS = [
    ("demo", "123456"),
    ("demo2", "123456"),
]

DEMO_PRODUCTS = [
    {"sku": "A1", "name": "Молоко 1 л", "price": Decimal("5.00"), "quantity": 10, "category": "Молочные"},
    {"sku": "B2", "name": "Сахар 1 кг", "price": Decimal("3.40"), "quantity": 25, "category": "Бакалея"},
    {"sku": "C3", "name": "Кофе зерновой", "price": Decimal("12.90"), "quantity": 4, "category": "Напитки"},
    {"sku": "D4", "name": "Чай чёрный", "price": Decimal("4.15"), "quantity": 0, "category": "Напитки"},
]


def run_seed():
    # === RESET ===
    Base.metadata.drop_all(bind=engine)
    print("🗑 Все таблицы удалены")

    configure_mappers()
    Base.metadata.create_all(bind=engine)
    print("✅ Все таблицы пересозданы")

    db = SessionLocal()
    try:
        users = []
        for username, raw_password in DEMO_USERS:
            user = User(username=username, password_hash=hash_password(raw_password))
            db.add(user)
            db.commit()
            db.refresh(user)
            users.append(user)
            print(f"✅ User created (username='{username}', password='{raw_password}')")

        owner = users[0]
        created = {}
        for data in DEMO_PRODUCTS:
            product = products_service.create_product(db, data, owner)
            created[product.sku] = product
            print(f"✅ Товар создан: {product.name} ({product.quantity} шт.)")

        order = orders_service.place_order(db, [
            OrderLineRequest(product_id=created["A1"].id, quantity=3, unit_price=Decimal("5.00")),
            OrderLineRequest(product_id=created["B2"].id, quantity=5),
        ], owner)
        print(f"✅ Заказ {order.order_number} на сумму {order.total_amount}")

        print("🎉 Готово: БД заполнена демо-данными.")
    finally:
        db.close()


if __name__ == "__main__":
    run_seed()
