from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from inventory_app.db import get_db
from inventory_app.middleware.auth import get_current_user
from inventory_app.models.user import User
from inventory_app.schemas import OrderRequest, StatusRequest
from inventory_app.services import orders as orders_service
from inventory_app.services.orders import OrderLineRequest
from inventory_app.utils.enums import OrderStatus
from inventory_app.utils.serializers import order_to_dict

router = APIRouter(prefix="/api/orders", tags=["orders"])


@router.get("")
def orders_index(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return [order_to_dict(o) for o in orders_service.list_orders(db, user)]


@router.get("/recent")
def orders_recent(
    days: int = Query(7, ge=1, le=3650),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return [order_to_dict(o) for o in orders_service.list_recent_orders(db, user, days)]


@router.get("/count")
def orders_count(
    status: str = Query(OrderStatus.PENDING.value),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return {"status": status, "count": orders_service.count_orders_by_status(db, user, status)}


@router.get("/status/{status}")
def orders_by_status(status: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return [order_to_dict(o) for o in orders_service.list_orders_by_status(db, status, user)]


# ---------- ДЕТАЛИ ЗАКАЗА ----------
@router.get("/{order_id}")
def order_detail(order_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    order = orders_service.get_order(db, order_id, user)
    if not order:
        raise HTTPException(status_code=404, detail="Заказ не найден")
    return order_to_dict(order)


# ---------- ОФОРМЛЕНИЕ ----------
@router.post("", status_code=201)
def order_create(body: OrderRequest, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    lines = [
        OrderLineRequest(product_id=it.product.id, quantity=it.quantity, unit_price=it.unit_price)
        for it in body.order_items
    ]
    order = orders_service.place_order_with_retry(db, lines, user)
    return order_to_dict(order)


# ---------- СМЕНА СТАТУСА ----------
@router.put("/{order_id}/status")
def order_change_status(
    order_id: int,
    body: StatusRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    order = orders_service.update_order_status(db, order_id, body.status, user)
    return order_to_dict(order)
