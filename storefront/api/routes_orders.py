from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from storefront.core.security import Actor, require_admin
from storefront.orders import get_order, list_orders, order_to_dict
from storefront.persistence.db import get_session

router = APIRouter(tags=["orders"])


@router.get("/orders")
def get_orders(
    status: str | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    _: Actor = Depends(require_admin),
    session: Session = Depends(get_session),
):
    rows, total = list_orders(session, status=status, limit=limit, offset=offset)
    return {
        "orders": [order_to_dict(row) for row in rows],
        "pagination": {
            "total": total,
            "limit": limit,
            "offset": offset,
            "hasMore": offset + len(rows) < total,
        },
    }


@router.get("/orders/{order_id}")
def get_order_detail(order_id: str, _: Actor = Depends(require_admin), session: Session = Depends(get_session)):
    order = get_order(session, order_id)
    if order is None:
        raise HTTPException(status_code=404, detail="order not found")
    return order_to_dict(order)
