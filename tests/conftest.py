from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import support_bot.db as db
from support_bot.auth import create_access_token, hash_password
from support_bot.cache import MemoryCache
from support_bot.container import SupportServices
from support_bot.errors import EmbeddingUnavailable
from support_bot.main import app
from support_bot.models import Base, Order, Product, User
from support_bot.routes.chat import limiter
from support_bot.services.chat_log import ConversationLogStore
from support_bot.services.context_store import SelectedProductContextStore
from support_bot.services.faq import FaqEntry, FaqMatcher
from support_bot.services.orchestrator import ChatOrchestrator

TEST_PASSWORD = "secret123"


# =============================================================================
# Fakes for the OpenAI-backed collaborators
# =============================================================================

class FakeGateway:
    """Stands in for TextGenerationGateway; returns queued replies in order."""

    def __init__(self, replies=None):
        self.replies = list(replies or [])
        self.prompts = []
        self.error = None

    def generate(self, prompt):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        if self.replies:
            return self.replies.pop(0)
        return "How can I help you with this product?"


class FakeEmbedder:
    """Maps known texts to fixed vectors; anything else gets an orthogonal one."""

    def __init__(self, vectors=None, default=(0.0, 0.0, 1.0)):
        self.vectors = dict(vectors or {})
        self.default = list(default)
        self.calls = []
        self.fail = False

    def embed(self, text):
        self.calls.append(text)
        if self.fail:
            raise EmbeddingUnavailable("Failed to get embedding")
        return list(self.vectors.get(text, self.default))


# =============================================================================
# Database
# =============================================================================

@pytest.fixture
def session_factory():
    """In-memory SQLite shared by all sessions through StaticPool."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    engine.dispose()


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


def seed_store(session):
    """
    Two customers and an admin.

    alice: order A1 = [Wireless Headphones, USB-C Charger], order B2 = [Running Shoes]
    bob:   order C3 = [Coffee Beans]
    """
    alice = User(
        name="Alice",
        email="alice@shop.com",
        password_hash=hash_password(TEST_PASSWORD),
        role="user",
        orders=[
            Order(
                order_id="A1",
                status="shipped",
                total_amount=129.0,
                payment_method="card",
                delivery_address="12 Market Road",
                delivery_pincode="560001",
                products=[
                    Product(position=0, name="Wireless Headphones", quantity=1, price=89.0, domain="electronics"),
                    Product(position=1, name="USB-C Charger", quantity=2, price=20.0, domain="electronics"),
                ],
            ),
            Order(
                order_id="B2",
                status="placed",
                total_amount=59.0,
                payment_method="upi",
                products=[
                    Product(position=0, name="Running Shoes", quantity=1, price=59.0, domain="fashion"),
                ],
            ),
        ],
    )
    bob = User(
        name="Bob",
        email="bob@shop.com",
        password_hash=hash_password(TEST_PASSWORD),
        role="user",
        orders=[
            Order(
                order_id="C3",
                status="delivered",
                total_amount=12.5,
                payment_method="card",
                products=[
                    Product(position=0, name="Coffee Beans", quantity=1, price=12.5, domain="grocery"),
                ],
            ),
        ],
    )
    admin = User(
        name="Support Admin",
        email="admin@shop.com",
        password_hash=hash_password(TEST_PASSWORD),
        role="admin",
    )
    session.add_all([alice, bob, admin])
    session.commit()
    return SimpleNamespace(alice_id=alice.id, bob_id=bob.id, admin_id=admin.id)


@pytest.fixture
def seeded(session_factory):
    session = session_factory()
    try:
        return seed_store(session)
    finally:
        session.close()


# =============================================================================
# Chat pipeline
# =============================================================================

@pytest.fixture
def cache():
    return MemoryCache()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def embedder():
    return FakeEmbedder()


@pytest.fixture
def faq_matcher(embedder):
    return FaqMatcher(embedder, [])


@pytest.fixture
def log_store(cache):
    return ConversationLogStore(cache)


@pytest.fixture
def context_store(cache):
    return SelectedProductContextStore(cache)


@pytest.fixture
def orchestrator(gateway, faq_matcher, context_store, log_store):
    return ChatOrchestrator(
        gateway=gateway,
        faq_matcher=faq_matcher,
        context_store=context_store,
        log_store=log_store,
    )


def faq_entry(question, answer, embedding):
    return FaqEntry(question=question, answer=answer, embedding=embedding)


# =============================================================================
# API
# =============================================================================

@pytest.fixture
def client(session_factory, seeded, cache, orchestrator, faq_matcher, monkeypatch):
    """
    FastAPI TestClient wired to the in-memory database and fake services.

    The service container is attached before startup, so the lifespan
    handler never builds the real OpenAI-backed one.
    """
    monkeypatch.setattr(db, "engine", session_factory.kw["bind"])
    monkeypatch.setattr(db, "SessionLocal", session_factory)

    def override_get_db():
        db_sess = session_factory()
        try:
            yield db_sess
        finally:
            db_sess.close()

    app.dependency_overrides[db.get_db] = override_get_db
    app.state.services = SupportServices(cache=cache, orchestrator=orchestrator, faq_matcher=faq_matcher)
    limiter_enabled = limiter.enabled
    limiter.enabled = False
    limiter.reset()

    with TestClient(app) as test_client:
        yield test_client

    limiter.enabled = limiter_enabled
    limiter.reset()
    app.dependency_overrides.clear()
    app.state.services = None


def bearer(user_id, role="user"):
    token = create_access_token(SimpleNamespace(id=user_id, role=role))
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def alice_headers(seeded):
    return bearer(seeded.alice_id)


@pytest.fixture
def bob_headers(seeded):
    return bearer(seeded.bob_id)


@pytest.fixture
def admin_headers(seeded):
    return bearer(seeded.admin_id, role="admin")
