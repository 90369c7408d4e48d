"""
Inventory API Endpoints
"""
from fastapi import APIRouter, Depends

from order_tx.api.dependencies import get_order_service
from order_tx.services.order_service import OrderService

router = APIRouter()


@router.get("/")
def get_inventory(service: OrderService = Depends(get_order_service)):
    """Current inventory, ordered by product name"""
    products = service.list_products()
    return {
        "status": "success",
        "count": len(products),
        "data": [product.to_dict() for product in products]
    }


@router.get("/low-stock")
def get_low_stock(service: OrderService = Depends(get_order_service)):
    products = service.list_low_stock_products()
    return {
        "status": "success",
        "count": len(products),
        "data": [product.to_dict() for product in products]
    }
