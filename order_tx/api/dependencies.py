"""
FastAPI dependencies
"""
from fastapi import Request

from order_tx.services.order_service import OrderService


def get_order_service(request: Request) -> OrderService:
    """
    FastAPI dependency returning the OrderService built at startup

    Usage:
        @router.get("/")
        def list_orders(service: OrderService = Depends(get_order_service)):
            ...
    """
    return request.app.state.order_service
