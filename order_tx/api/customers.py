"""
Customers API Endpoints
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from order_tx.api.dependencies import get_order_service
from order_tx.domain.order import OrderLine
from order_tx.services.order_service import OrderService

router = APIRouter()


class CustomerOrderRequest(BaseModel):
    """Order for an existing customer: product + quantity or products"""
    product: Optional[str] = None
    quantity: Optional[int] = None
    products: Optional[List[OrderLine]] = None
    simulate_error: bool = False


@router.get("/")
def get_customers(service: OrderService = Depends(get_order_service)):
    customers = service.list_customers()
    return {
        "status": "success",
        "count": len(customers),
        "data": [customer.to_dict() for customer in customers]
    }


@router.get("/{customer_id}/orders")
def get_customer_orders(customer_id: int, service: OrderService = Depends(get_order_service)):
    orders = service.list_customer_orders(customer_id)
    return {
        "status": "success",
        "count": len(orders),
        "data": [order.to_dict() for order in orders]
    }


@router.post("/{customer_id}/orders", status_code=status.HTTP_201_CREATED)
def create_customer_order(
    customer_id: int,
    request: CustomerOrderRequest,
    service: OrderService = Depends(get_order_service)
):
    """Place an order for a customer that already exists"""
    if request.products:
        items = request.products
    elif request.product is not None or request.quantity is not None:
        items = {"product": request.product, "quantity": request.quantity}
    else:
        items = None

    result = service.process_order_for_customer(customer_id, items, simulate_error=request.simulate_error)
    return {"status": "success", "data": result.to_dict()}
