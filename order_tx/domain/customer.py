"""
Customer Domain Models

A customer is identified by a unique email. Resubmitting an email with a
different name is an identity conflict, never a rename.
"""
from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import Optional
from datetime import datetime


class Customer(BaseModel):
    """
    Customer domain model

    Fields:
        id: Internal customer ID (primary key)
        name: Full name as first registered
        email: Unique identity key
        phone: Contact phone (optional)
        address: Postal address (optional)
        created_at: When the customer was first registered
    """

    id: int = Field(..., description="Customer ID")
    name: str = Field(..., description="Customer name")
    email: str = Field(..., description="Customer email (unique)")
    phone: Optional[str] = Field(None, description="Customer phone")
    address: Optional[str] = Field(None, description="Customer address")
    created_at: Optional[datetime] = Field(None, description="Creation timestamp")

    model_config = ConfigDict(from_attributes=True)

    def to_dict(self) -> dict:
        data = self.model_dump()
        if data.get('created_at'):
            data['created_at'] = data['created_at'].isoformat()
        return data


class CustomerInput(BaseModel):
    """Customer data submitted with an order"""

    name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., min_length=3, max_length=100)
    phone: Optional[str] = Field(None, max_length=20)
    address: Optional[str] = None

    @field_validator('name', 'email')
    @classmethod
    def strip_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @field_validator('email')
    @classmethod
    def email_shape(cls, value: str) -> str:
        if '@' not in value:
            raise ValueError("must be an email address")
        return value


class CustomerUpdate(BaseModel):
    """Schema for updating an existing customer"""
    name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
