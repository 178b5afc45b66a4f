from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from inventory_app.db import get_db
from inventory_app.middleware.auth import get_current_user
from inventory_app.models.user import User
from inventory_app.schemas import ProductRequest, QuantityRequest
from inventory_app.services import products as products_service
from inventory_app.utils.serializers import product_to_dict

router = APIRouter(prefix="/api/products", tags=["products"])


# 📦 список товаров
@router.get("")
def products_index(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return [product_to_dict(p) for p in products_service.list_products(db, user)]


# 🔍 поиск по названию
@router.get("/search")
def products_search(
    name: str = Query(""),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return [product_to_dict(p) for p in products_service.search_products(db, name, user)]


# ⚠️ заканчивающиеся товары
@router.get("/low-stock")
def products_low_stock(
    threshold: Optional[int] = Query(None, ge=0),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return [product_to_dict(p) for p in products_service.list_low_stock(db, user, threshold)]


@router.get("/category/{category}")
def products_by_category(category: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return [product_to_dict(p) for p in products_service.list_by_category(db, category, user)]


@router.get("/sku/{sku}")
def product_by_sku(sku: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    product = products_service.find_by_sku(db, sku, user)
    if not product:
        raise HTTPException(status_code=404, detail="Товар не найден")
    return product_to_dict(product)


@router.get("/{product_id}")
def product_detail(product_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    product = products_service.find_owned(db, product_id, user)
    if not product:
        raise HTTPException(status_code=404, detail="Товар не найден")
    return product_to_dict(product)


# 💾 создание
@router.post("", status_code=201)
def product_create(body: ProductRequest, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    product = products_service.create_product(db, body.model_dump(), user)
    return product_to_dict(product)


# 🔄 обновление товара
@router.put("/{product_id}")
def product_update(
    product_id: int,
    body: ProductRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    product = products_service.update_product(db, product_id, body.model_dump(), user)
    return product_to_dict(product)


# 🔄 только остаток
@router.put("/{product_id}/quantity")
def product_update_quantity(
    product_id: int,
    body: QuantityRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    product = products_service.update_product_quantity(db, product_id, body.quantity, user)
    return product_to_dict(product)


# 🗑 удаление
@router.delete("/{product_id}")
def product_delete(product_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    products_service.delete_product(db, product_id, user)
    return {"ok": True, "deleted": product_id}
