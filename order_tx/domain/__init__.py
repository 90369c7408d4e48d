"""
Domain Layer - Business Entities

This layer contains Pydantic models representing business entities.
These models enforce type safety and validation across the application.
"""
from order_tx.domain.customer import Customer, CustomerInput, CustomerUpdate
from order_tx.domain.product import Product, ProductInput
from order_tx.domain.order import Order, OrderLine, OrderRequest, OrderStatistics, OrderStatus
from order_tx.domain.results import (
    BatchItemResult,
    BatchResult,
    CancellationResult,
    CancelledOrder,
    OrderResult,
    OrderResultSummary,
    OrderSummaryReport,
    ProcessedProduct,
)

__all__ = [
    'Customer', 'CustomerInput', 'CustomerUpdate',
    'Product', 'ProductInput',
    'Order', 'OrderLine', 'OrderRequest', 'OrderStatistics', 'OrderStatus',
    'BatchItemResult', 'BatchResult', 'CancellationResult', 'CancelledOrder',
    'OrderResult', 'OrderResultSummary', 'OrderSummaryReport', 'ProcessedProduct',
]
