"""
Service Layer - business workflows
"""
from order_tx.services.order_service import OrderService

__all__ = ['OrderService']
