"""
Orders API Endpoints
Place, list, cancel and summarize orders

Business errors raised by the service are turned into JSON responses by the
exception handlers registered in main.py.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from order_tx.api.dependencies import get_order_service
from order_tx.domain.order import OrderRequest
from order_tx.services.order_service import OrderService

router = APIRouter()


class BatchOrderRequest(BaseModel):
    """Orders are validated one by one so a malformed item only fails itself"""
    orders: List[Dict[str, Any]] = Field(..., min_length=1)
    stop_on_first_error: bool = True


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_order(request: OrderRequest, service: OrderService = Depends(get_order_service)):
    """
    Place an order in a single transaction

    Body: customer {name, email, phone?, address?} plus either
    product + quantity or products [{product, quantity}], and an optional
    simulate_error flag to exercise rollback.
    """
    result = service.process_order(
        request.customer,
        request.requested_items(),
        simulate_error=request.simulate_error,
    )

    return {
        "status": "success",
        "data": {
            "orders_created": result.summary.orders_created,
            "total_value": float(result.summary.total_value),
            "customer": result.customer.name,
            "products": [p.to_dict() for p in result.summary.products],
            "orders": [o.to_dict() for o in result.orders],
        }
    }


@router.post("/batch")
def create_orders_batch(request: BatchOrderRequest, service: OrderService = Depends(get_order_service)):
    """Process several orders, each in its own transaction"""
    result = service.batch_process_orders(request.orders, stop_on_first_error=request.stop_on_first_error)
    return {"status": "success", "data": result.to_dict()}


@router.get("/")
def get_orders(
    limit: Optional[int] = Query(None, ge=1, le=10000),
    from_date: Optional[datetime] = Query(None, description="Filter orders from this date (ISO format)"),
    to_date: Optional[datetime] = Query(None, description="Filter orders until this date (ISO format)"),
    service: OrderService = Depends(get_order_service)
):
    orders = service.list_orders(limit=limit, from_date=from_date, to_date=to_date)
    return {
        "status": "success",
        "count": len(orders),
        "data": [order.to_dict() for order in orders]
    }


@router.get("/summary")
def get_order_summary(
    recent: int = Query(10, ge=1, le=100, description="Number of recent orders to include"),
    service: OrderService = Depends(get_order_service)
):
    """
    Get order statistics

    Returns:
    - Totals (orders, revenue, average order, unique customers)
    - Most recent orders
    - Products at or below minimum stock
    """
    report = service.get_summary(recent_limit=recent)
    return {"status": "success", "data": report.to_dict()}


@router.get("/{order_id}")
def get_order(order_id: int, service: OrderService = Depends(get_order_service)):
    order = service.get_order(order_id)
    return {"status": "success", "data": order.to_dict()}


@router.delete("/{order_id}")
def cancel_order(order_id: int, service: OrderService = Depends(get_order_service)):
    """Cancel an order and restore its stock"""
    result = service.cancel_order(order_id)
    return {"status": "success", "data": result.to_dict()}
