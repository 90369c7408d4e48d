"""
Repository Layer - Data Access

This layer handles all database queries and returns domain models.
Repositories abstract away SQL details from business logic and receive the
caller's connection, so several calls share one transaction.
"""
from order_tx.repositories.customer_repository import CustomerRepository
from order_tx.repositories.product_repository import ProductRepository
from order_tx.repositories.order_repository import OrderRepository

__all__ = [
    'CustomerRepository',
    'ProductRepository',
    'OrderRepository',
]
