from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    Integer,
    String,
    Float,
    JSON,
    DateTime,
    ForeignKey,
    Text,
    Index,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()

# Business verticals a product can belong to
PRODUCT_DOMAINS = (
    "electronics",
    "fashion",
    "grocery",
    "home",
    "beauty",
    "books",
    "sports",
    "toys",
)

CASE_STATUSES = ("open", "in-progress", "resolved")
CASE_PRIORITIES = ("high", "low")
USER_ROLES = ("user", "admin")


def utcnow() -> datetime:
    """Naive UTC timestamp (SQLite drops tzinfo, so we never store it)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=True)
    email = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
    role = Column(String, nullable=False, default="user")  # user | admin
    created_at = Column(DateTime, default=utcnow, nullable=False)

    orders = relationship(
        "Order",
        back_populates="user",
        cascade="all, delete-orphan",
        order_by="Order.id",
    )
    cases = relationship("Case", back_populates="user", cascade="all, delete-orphan")


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    order_id = Column(String, nullable=False)  # unique within a user, shown to customers
    status = Column(String, nullable=False, default="placed")
    total_amount = Column(Float, nullable=False, default=0.0)
    payment_method = Column(String, nullable=True)
    order_date = Column(DateTime, default=utcnow, nullable=False)

    delivery_address = Column(String, nullable=True)
    delivery_pincode = Column(String, nullable=True)
    expected_delivery_date = Column(DateTime, nullable=True)

    user = relationship("User", back_populates="orders")
    # Products are addressed by position, so ordering here is load-bearing
    products = relationship(
        "Product",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="Product.position",
    )

    __table_args__ = (
        UniqueConstraint("user_id", "order_id", name="uix_user_order"),
    )


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    order_pk = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False)
    name = Column(String, nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    price = Column(Float, nullable=False, default=0.0)
    domain = Column(String, nullable=True)  # one of PRODUCT_DOMAINS

    order = relationship("Order", back_populates="products")


class Case(Base):
    """A support ticket for one (user, order, product position) triple."""
    __tablename__ = "cases"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    order_id = Column(String, nullable=False)
    product_index = Column(Integer, nullable=False)
    description = Column(Text, nullable=False)
    priority = Column(String, nullable=False, default="low")  # high | low
    status = Column(String, nullable=False, default="open", index=True)  # open | in-progress | resolved
    product_changes = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    user = relationship("User", back_populates="cases")
    responses = relationship(
        "CaseResponse",
        back_populates="case",
        cascade="all, delete-orphan",
        order_by="CaseResponse.id",
    )

    __table_args__ = (
        UniqueConstraint("user_id", "order_id", "product_index", name="uix_case_triple"),
        Index("ix_cases_priority_created_at", "priority", "created_at"),
    )


class CaseResponse(Base):
    __tablename__ = "case_responses"

    id = Column(Integer, primary_key=True, index=True)
    case_id = Column(Integer, ForeignKey("cases.id", ondelete="CASCADE"), nullable=False, index=True)
    # NULL admin_id means the entry was written by the system (bot or mirrored user turn)
    admin_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    message = Column(Text, nullable=False)
    timestamp = Column(DateTime, default=utcnow, nullable=False)
    # chat log entry this line was folded from; NULL for admin replies
    log_entry_id = Column(String, nullable=True, index=True)

    case = relationship("Case", back_populates="responses")


class Faq(Base):
    __tablename__ = "faqs"

    id = Column(Integer, primary_key=True, index=True)
    question = Column(Text, nullable=False)
    answer = Column(Text, nullable=False)
    domain = Column(String, nullable=True, index=True)
    embedding = Column(JSON, nullable=False)  # list of floats

    __table_args__ = (
        UniqueConstraint("question", "domain", name="uix_faq_question_domain"),
    )
