"""
Demo data for local development.

Creates an admin, a customer with two orders, and the FAQ collections the
chat pipeline answers from without calling the LLM.

Usage:
------
    python -m support_bot.seed_data

Requires OPENAI_API_KEY for FAQ embeddings.
"""

from datetime import timedelta

from .auth import hash_password
from .db import SessionLocal, init_db
from .logging_config import setup_logging
from .models import Order, Product, User, utcnow
from .services.faq import OpenAIEmbedder, init_faqs
from .services.generation import build_openai_client
from .services.orders import recompute_order_total


FAQ_COLLECTIONS = [
    {
        "domain": "electronics",
        "faqs": [
            {
                "question": "How do I claim the warranty for my device?",
                "answer": "Warranty claims can be raised from the order page within the warranty "
                          "period. Keep the invoice and serial number handy.",
            },
            {
                "question": "My device is not turning on, what should I do?",
                "answer": "Please charge the device for at least 30 minutes with the original "
                          "charger and hold the power button for 10 seconds. If it still does "
                          "not start, tell us and we will open a case.",
            },
        ],
    },
    {
        "domain": "fashion",
        "faqs": [
            {
                "question": "How do I exchange an item for a different size?",
                "answer": "Size exchanges are free within 15 days of delivery, provided the tags "
                          "are intact.",
            },
        ],
    },
    {
        "domain": "grocery",
        "faqs": [
            {
                "question": "Can I return perishable grocery items?",
                "answer": "Perishable items cannot be returned, but damaged or expired items are "
                          "refunded in full if reported within 48 hours of delivery.",
            },
        ],
    },
    {
        "domain": "general",
        "faqs": [
            {
                "question": "How long does a refund take?",
                "answer": "Refunds reach the original payment method within 5-7 business days "
                          "after the return is picked up.",
            },
            {
                "question": "How can I track my order?",
                "answer": "Open the order from your dashboard to see its current status and the "
                          "expected delivery date.",
            },
        ],
    },
]


def _order(order_id: str, payment_method: str, days_ago: int, products) -> Order:
    now = utcnow()
    order = Order(
        order_id=order_id,
        status="shipped",
        payment_method=payment_method,
        order_date=now - timedelta(days=days_ago),
        delivery_address="221B Baker Street, London",
        delivery_pincode="560001",
        expected_delivery_date=now + timedelta(days=3),
        products=[
            Product(position=i, name=name, quantity=qty, price=price, domain=domain)
            for i, (name, qty, price, domain) in enumerate(products)
        ],
    )
    recompute_order_total(order)
    return order


def seed_users():
    db = SessionLocal()
    try:
        existing = db.query(User).count()
        if existing > 0:
            print(f"Database already has {existing} users. Not seeding again.")
            return

        admin = User(
            name="Support Admin",
            email="admin@shop.com",
            password_hash=hash_password("admin123"),
            role="admin",
        )
        customer = User(
            name="Alice",
            email="alice@shop.com",
            password_hash=hash_password("alice123"),
            role="user",
            orders=[
                _order("ORD-1001", "card", 5, [
                    ("Wireless Headphones", 1, 89.99, "electronics"),
                    ("USB-C Charger", 2, 19.5, "electronics"),
                ]),
                _order("ORD-1002", "upi", 2, [
                    ("Running Shoes", 1, 59.0, "fashion"),
                    ("Organic Almonds 500g", 3, 7.25, "grocery"),
                ]),
            ],
        )
        db.add_all([admin, customer])
        db.commit()
        print("Seeded 2 users and 2 orders.")
    finally:
        db.close()


def seed_faqs():
    db = SessionLocal()
    try:
        embedder = OpenAIEmbedder(build_openai_client())
        added = init_faqs(db, embedder, FAQ_COLLECTIONS)
        print(f"Seeded {added} FAQs.")
    finally:
        db.close()


if __name__ == "__main__":
    setup_logging()
    init_db()
    seed_users()
    seed_faqs()
