"""
Prompt builder for the support assistant.

Builds one self-contained prompt per chat turn from:
- The user's identity
- The product the chat is scoped to (selected-product context)
- The user's orders, so questions about status and delivery can be answered
- The last few turns of this user's conversation log
- The instruction block describing when and how to emit a case directive

The directive format described here must stay in sync with
services/directive.py, which parses it back out of the reply.
"""

import json
from typing import Any, Dict, List, Optional, Sequence

from . import config


# =============================================================================
# INSTRUCTION TEMPLATE
# =============================================================================
# Placeholders are filled in by build_chat_prompt():
#   __ORDER_ID__ / __PRODUCT_INDEX__ - the selected product's address
# =============================================================================

INSTRUCTIONS_TEMPLATE = '''INSTRUCTIONS:
- You are a concise, polite customer-support assistant for an online store.
- Answer ONLY from the USER, SELECTED PRODUCT and ORDERS data above. Never invent
  orders, products, prices, dates or policies.
- If the question can be answered from that data (status, delivery date, price,
  payment method), answer it directly.
- If the user reports a problem with the selected product (damaged, defective,
  missing, wrong item, late delivery, payment or refund issue) or explicitly asks
  to open a case or complaint, reply to the user normally and then append EXACTLY
  ONE JSON object as the very last thing in your reply, on its own line, with no
  code fences and nothing after it:
  {"createCase": true, "orderId": "__ORDER_ID__", "productIndex": __PRODUCT_INDEX__, "description": "<one sentence summary of the issue>", "priority": "<high|low>"}
  Use "high" only for payment, billing, refund, charge or transaction problems.
  Use exactly these keys. Do not include the JSON object in any other situation.
- If you cannot tell which order or product the user means, ask a short
  clarifying question instead of guessing, and do not emit the JSON object.
'''


def render_history(entries: Sequence[Dict[str, Any]]) -> str:
    if not entries:
        return "(no history)"
    return "\n\n".join(f"User: {e.get('prompt', '')}\nAssistant: {e.get('reply', '')}" for e in entries)


def render_orders(orders: Sequence[Dict[str, Any]]) -> str:
    if not orders:
        return "(no orders)"
    blocks = []
    for order in orders:
        delivery = order.get("delivery") or {}
        products = "\n".join(
            f"    [{index}] {p['name']} (Qty: {p['quantity']}, Price: {p['price']})"
            for index, p in enumerate(order.get("products", []))
        )
        blocks.append(
            f"Order ID: {order['orderId']}\n"
            f"  Status: {order.get('status')}\n"
            f"  Total Amount: {order.get('totalAmount')}\n"
            f"  Payment Method: {order.get('paymentMethod')}\n"
            f"  Order Date: {order.get('orderDate')}\n"
            f"  Expected Delivery: {delivery.get('expectedDeliveryDate')}\n"
            f"  Delivery Address: {delivery.get('address')}, Pincode: {delivery.get('pincode')}\n"
            f"  Products:\n{products}"
        )
    return "\n\n".join(blocks)


def build_chat_prompt(
    user: Dict[str, Any],
    selected: Dict[str, Any],
    message: str,
    history: Sequence[Dict[str, Any]] = (),
    orders: Optional[List[Dict[str, Any]]] = None,
    history_turns: int = None,
) -> str:
    """
    Assemble the generation prompt for one chat turn.

    Args:
        user: {"name", "email", "role"}
        selected: the selected-product context
        message: the user's raw message
        history: prior chat log entries, oldest first
        orders: serialized orders (see services.orders.serialize_order)
        history_turns: how many prior turns to include (default CHAT_HISTORY_TURNS)
    """
    if history_turns is None:
        history_turns = config.CHAT_HISTORY_TURNS
    recent = list(history)[-history_turns:] if history_turns > 0 else []

    instructions = (
        INSTRUCTIONS_TEMPLATE
        .replace("__ORDER_ID__", str(selected.get("orderId")))
        .replace("__PRODUCT_INDEX__", str(selected.get("productIndex")))
    )

    return (
        "USER:\n"
        f"Name: {user.get('name')}\nEmail: {user.get('email')}\nRole: {user.get('role')}\n\n"
        "SELECTED PRODUCT:\n"
        f"{json.dumps(selected, indent=2, default=str)}\n\n"
        "ORDERS:\n"
        f"{render_orders(orders or [])}\n\n"
        "CHAT HISTORY:\n"
        f"{render_history(recent)}\n\n"
        f"{instructions}\n"
        f'USER QUERY: "{message}"\n'
    )
