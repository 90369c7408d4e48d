"""
Result models returned by the order service
"""
from pydantic import BaseModel, Field
from typing import Optional, List
from decimal import Decimal

from order_tx.domain.customer import Customer
from order_tx.domain.product import Product
from order_tx.domain.order import Order, OrderStatistics


class ProcessedProduct(BaseModel):
    """Per-line breakdown of a processed order"""
    product_id: int
    product: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal
    previous_stock: int
    new_stock: int

    def to_dict(self) -> dict:
        data = self.model_dump()
        data['unit_price'] = float(data['unit_price'])
        data['line_total'] = float(data['line_total'])
        return data


class OrderResultSummary(BaseModel):
    customer_name: str
    orders_created: int
    total_quantity: int
    total_value: Decimal
    products: List[ProcessedProduct] = Field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            'customer_name': self.customer_name,
            'orders_created': self.orders_created,
            'total_quantity': self.total_quantity,
            'total_value': float(self.total_value),
            'products': [p.to_dict() for p in self.products],
        }


class OrderResult(BaseModel):
    """Everything committed by one process_order call"""
    customer: Customer
    products: List[Product]
    orders: List[Order]
    summary: OrderResultSummary

    @property
    def total_value(self) -> Decimal:
        return self.summary.total_value

    def to_dict(self) -> dict:
        return {
            'customer': self.customer.to_dict(),
            'products': [p.to_dict() for p in self.products],
            'orders': [o.to_dict() for o in self.orders],
            'summary': self.summary.to_dict(),
        }


class BatchItemResult(BaseModel):
    index: int
    success: bool
    result: Optional[OrderResult] = None
    error: Optional[str] = None
    error_type: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            'index': self.index,
            'success': self.success,
            'result': self.result.to_dict() if self.result else None,
            'error': self.error,
            'error_type': self.error_type,
        }


class BatchResult(BaseModel):
    """
    Outcome of a batch run

    processed counts the requests actually attempted, which is less than
    total when the batch stopped at the first failure.
    """
    total: int
    processed: int
    successful: int
    failed: int
    results: List[BatchItemResult] = Field(default_factory=list)

    @property
    def errors(self) -> List[BatchItemResult]:
        return [r for r in self.results if not r.success]

    def to_dict(self) -> dict:
        return {
            'total': self.total,
            'processed': self.processed,
            'successful': self.successful,
            'failed': self.failed,
            'results': [r.to_dict() for r in self.results],
        }


class CancelledOrder(BaseModel):
    """Order row as it was before deletion"""
    order: Order
    success: bool


class CancellationResult(BaseModel):
    order: Order
    product: Product
    message: str

    def to_dict(self) -> dict:
        return {
            'order': self.order.to_dict(),
            'product': self.product.to_dict(),
            'message': self.message,
        }


class OrderSummaryReport(BaseModel):
    statistics: OrderStatistics
    recent_orders: List[Order] = Field(default_factory=list)
    low_stock_products: List[Product] = Field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            'statistics': self.statistics.to_dict(),
            'recent_orders': [o.to_dict() for o in self.recent_orders],
            'low_stock_products': [p.to_dict() for p in self.low_stock_products],
        }
