"""
Order Domain Models

An order is a single line item: one customer, one product, a quantity and
the unit price captured when the order was placed.
"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List, Union
from datetime import datetime
from decimal import Decimal

from order_tx.domain.customer import CustomerInput


class OrderStatus:
    PENDING = "pending"
    CANCELLED = "cancelled"


class Order(BaseModel):
    """
    Order domain model - represents one order line

    Fields:
        id: Internal order ID (primary key)
        customer_id: Owning customer
        product_id: Ordered product
        quantity: Units ordered (> 0)
        unit_price: Price per unit at order time
        total: quantity * unit_price, computed when the row is written
        status: Order status (pending, cancelled, ...)
        created_at: When the order was placed

        # Related data (optional, from JOINs)
        customer_name, customer_email: Customer display fields
        product_name, product_description: Product display fields
    """

    id: int = Field(..., description="Order ID")
    customer_id: int = Field(..., description="Customer ID")
    product_id: int = Field(..., description="Product ID")
    quantity: int = Field(..., description="Quantity ordered", ge=1)
    unit_price: Decimal = Field(..., description="Price per unit at order time", ge=0)
    total: Decimal = Field(..., description="Line total", ge=0)
    status: str = Field(OrderStatus.PENDING, description="Order status")
    created_at: Optional[datetime] = Field(None, description="Order timestamp")

    # Related data (from JOINs - optional)
    customer_name: Optional[str] = Field(None, description="Customer name (from JOIN)")
    customer_email: Optional[str] = Field(None, description="Customer email (from JOIN)")
    product_name: Optional[str] = Field(None, description="Product name (from JOIN)")
    product_description: Optional[str] = Field(None, description="Product description (from JOIN)")

    model_config = ConfigDict(from_attributes=True)

    @property
    def is_cancelled(self) -> bool:
        return self.status == OrderStatus.CANCELLED

    def to_dict(self) -> dict:
        """Convert to dictionary with Decimal to float conversion"""
        data = self.model_dump()

        for field in ['unit_price', 'total']:
            if data.get(field) is not None:
                data[field] = float(data[field])
        if data.get('created_at'):
            data['created_at'] = data['created_at'].isoformat()

        return data


class OrderLine(BaseModel):
    """One requested product and quantity"""
    product: str = Field(..., min_length=1, description="Product name")
    quantity: int = Field(..., gt=0, description="Units requested")


class OrderRequest(BaseModel):
    """
    Order request as submitted by a caller

    Either product + quantity (single product) or products (list of lines).
    """
    customer: CustomerInput
    product: Optional[str] = None
    quantity: Optional[int] = None
    products: Optional[List[OrderLine]] = None
    simulate_error: bool = False

    def requested_items(self) -> Union[dict, List[OrderLine], None]:
        """Raw single-or-list product input, normalized by the order service"""
        if self.products:
            return self.products
        if self.product is not None or self.quantity is not None:
            return {"product": self.product, "quantity": self.quantity}
        return None


class OrderStatistics(BaseModel):
    """Aggregate figures over all orders"""
    total_orders: int = 0
    total_revenue: Decimal = Decimal('0')
    average_order_value: Decimal = Decimal('0')
    unique_customers: int = 0

    def to_dict(self) -> dict:
        data = self.model_dump()
        data['total_revenue'] = float(data['total_revenue'])
        data['average_order_value'] = float(data['average_order_value'])
        return data
