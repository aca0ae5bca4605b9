"""
User and Order Schemas for Support Bot
======================================

Read models for a user's profile and orders.

Endpoint Coverage:
------------------
- GET /api/user/{id}: Profile with orders (self or admin)
- GET /api/admin/orders: All orders across users (admin)

Product Addressing:
-------------------
Products are listed in order position. The list index of a product is the
productIndex used by chat selection and cases.
"""

from datetime import datetime
from typing import List, Optional

from .base import CamelModel


class ProductOut(CamelModel):
    name: str
    quantity: int
    price: float
    domain: Optional[str] = None


class OrderOut(CamelModel):
    order_id: str
    user_id: int
    status: str
    total_amount: float
    payment_method: Optional[str] = None
    order_date: Optional[datetime] = None
    delivery_address: Optional[str] = None
    delivery_pincode: Optional[str] = None
    expected_delivery_date: Optional[datetime] = None
    products: List[ProductOut] = []


class UserOut(CamelModel):
    id: int
    name: Optional[str] = None
    email: str
    role: str
    orders: List[OrderOut] = []
