from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from inventory_app.db import get_db
from inventory_app.middleware.auth import get_current_user
from inventory_app.models.user import User
from inventory_app.services import inventory_history, products as products_service
from inventory_app.utils.serializers import history_to_dict

router = APIRouter(prefix="/api/history", tags=["history"])


@router.get("")
def history_index(
    limit: Optional[int] = Query(None, ge=1, le=2000),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return [history_to_dict(h) for h in inventory_history.list_history(db, user, limit)]


@router.get("/recent")
def history_recent(
    days: int = Query(7, ge=1, le=3650),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return [history_to_dict(h) for h in inventory_history.list_recent_history(db, user, days)]


@router.get("/product/{product_id}")
def history_by_product(product_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    product = products_service.find_owned(db, product_id, user)
    if not product:
        raise HTTPException(status_code=404, detail="Товар не найден")
    return [history_to_dict(h) for h in inventory_history.list_product_history(db, product, user)]


@router.get("/action/{action}")
def history_by_action(action: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return [history_to_dict(h) for h in inventory_history.list_history_by_action(db, action, user)]
