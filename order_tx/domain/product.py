"""
Product Domain Model

Represents a sellable product and its inventory level.
Stock is never negative; min_stock drives the low-stock report.
"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional
from datetime import datetime
from decimal import Decimal


class Product(BaseModel):
    """
    Product domain model - a row of the inventory

    Fields:
        id: Internal product ID (primary key)
        name: Product name (unique)
        description: Product description (optional)
        price: Current unit price
        stock: Units on hand (never negative)
        min_stock: Low stock alert threshold
        updated_at: Last stock or price change
    """

    id: int = Field(..., description="Internal product ID")
    name: str = Field(..., description="Product name")
    description: Optional[str] = Field(None, description="Product description")
    price: Decimal = Field(..., description="Unit price", ge=0)
    stock: int = Field(0, description="Current stock level", ge=0)
    min_stock: int = Field(5, description="Minimum stock threshold", ge=0)
    updated_at: Optional[datetime] = Field(None, description="Last update timestamp")

    model_config = ConfigDict(from_attributes=True)

    @property
    def is_low_stock(self) -> bool:
        """Check if product stock is at or below minimum threshold"""
        return self.stock <= self.min_stock

    @property
    def is_out_of_stock(self) -> bool:
        return self.stock == 0

    def has_stock_for(self, quantity: int) -> bool:
        return self.stock >= quantity

    def to_dict(self) -> dict:
        """
        Convert to dictionary with computed fields

        Returns dict with all fields plus computed properties
        """
        data = self.model_dump()

        data['is_low_stock'] = self.is_low_stock
        data['is_out_of_stock'] = self.is_out_of_stock

        # Convert Decimal to float for JSON compatibility
        data['price'] = float(data['price'])
        if data.get('updated_at'):
            data['updated_at'] = data['updated_at'].isoformat()

        return data


class ProductInput(BaseModel):
    """Schema for creating a new product"""
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    price: Decimal = Field(..., ge=0)
    stock: int = Field(0, ge=0)
    min_stock: int = Field(5, ge=0)
