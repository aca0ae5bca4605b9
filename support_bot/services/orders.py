"""
Order Lookup Service
====================

Read helpers over a user's orders, plus the one write path the support flow
needs: applying an admin's product edits from a case.

Product Addressing:
-------------------
Products are addressed by (order_id, product_index), the product's position
within its order. Positions are validated against a fresh database read every
time they are used: 0 <= product_index < len(order.products). A stale index is
rejected with InvalidOrderOrProduct, never clamped.

Totals:
-------
Whenever a product's price or quantity changes, the order total is recomputed
as sum(price * quantity) over all of the order's products.
"""

import logging
from typing import Any, Dict, Optional, Tuple

from sqlalchemy.orm import Session, selectinload

from ..errors import InvalidOrderOrProduct
from ..models import Order, Product, User

logger = logging.getLogger(__name__)

EDITABLE_PRODUCT_FIELDS = ("name", "price", "quantity")


def get_user(db: Session, user_id: int) -> Optional[User]:
    return db.get(User, user_id)


def get_order(db: Session, user_id: int, order_id: str) -> Optional[Order]:
    """Fetch an order straight from the database, refreshing any loaded copy."""
    return (
        db.query(Order)
        .options(selectinload(Order.products))
        .populate_existing()
        .filter(Order.user_id == user_id, Order.order_id == order_id)
        .first()
    )


def resolve_product(db: Session, user_id: int, order_id: str, product_index: int) -> Tuple[Order, Product]:
    """
    Return (order, product) for a positional product reference.

    Raises:
        InvalidOrderOrProduct: unknown order or index out of range
    """
    order = get_order(db, user_id, order_id)
    if order is None:
        raise InvalidOrderOrProduct(f"Order {order_id} not found")

    products = order.products
    if not isinstance(product_index, int) or not 0 <= product_index < len(products):
        raise InvalidOrderOrProduct(
            f"Product index {product_index} is out of range for order {order_id}"
        )
    return order, products[product_index]


def product_context(order: Order, product: Product, product_index: int) -> Dict[str, Any]:
    """Snapshot stored as the user's selected-product context."""
    return {
        "orderId": order.order_id,
        "productIndex": product_index,
        "productName": product.name,
        "quantity": product.quantity,
        "price": product.price,
        "domain": product.domain,
        "orderStatus": order.status,
    }


def recompute_order_total(order: Order) -> float:
    order.total_amount = round(
        sum((p.price or 0.0) * (p.quantity or 0) for p in order.products), 2
    )
    return order.total_amount


def apply_product_changes(
    db: Session,
    user_id: int,
    order_id: str,
    product_index: int,
    changes: Dict[str, Any],
) -> Order:
    """
    Apply name/price/quantity edits to one product and recompute the total.

    Unknown keys are ignored. The caller commits.
    """
    order, product = resolve_product(db, user_id, order_id, product_index)

    for field in EDITABLE_PRODUCT_FIELDS:
        if field in changes and changes[field] is not None:
            setattr(product, field, changes[field])

    recompute_order_total(order)
    logger.info(
        "Applied product changes to order %s item %d (new total %.2f)",
        order_id, product_index, order.total_amount,
    )
    return order


def serialize_order(order: Order) -> Dict[str, Any]:
    return {
        "orderId": order.order_id,
        "status": order.status,
        "totalAmount": order.total_amount,
        "paymentMethod": order.payment_method,
        "orderDate": order.order_date.isoformat() if order.order_date else None,
        "delivery": {
            "address": order.delivery_address,
            "pincode": order.delivery_pincode,
            "expectedDeliveryDate": (
                order.expected_delivery_date.isoformat() if order.expected_delivery_date else None
            ),
        },
        "products": [
            {
                "name": p.name,
                "quantity": p.quantity,
                "price": p.price,
                "domain": p.domain,
            }
            for p in order.products
        ],
    }
