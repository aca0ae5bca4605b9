"""
Support Bot API
===============

FastAPI application for the e-commerce support assistant: customers chat
about a product from one of their orders, the assistant answers from the FAQ
or the LLM, and support cases are opened for admins when needed.

Startup:
--------
1. Logging is configured at import time (logging_config.setup_logging)
2. The lifespan handler creates tables (db.init_db) and builds the service
   container (cache, OpenAI gateway, FAQ matcher, orchestrator) unless one
   was already attached to app.state, as tests do
3. On shutdown the container closes its cache connection

Running:
--------
    uvicorn support_bot.main:app --reload
"""

# Load environment variables FIRST, before any module imports that need them
from dotenv import load_dotenv
load_dotenv()

import logging
from contextlib import asynccontextmanager
from typing import Dict

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from . import db
from .config import CORS_ORIGINS
from .container import build_services
from .logging_config import setup_logging
from .routes import account_router, admin_cases_router, chat_router, users_router
from .routes.chat import limiter

# Configure logging at module load time
setup_logging()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    db.init_db()

    if getattr(app.state, "services", None) is None:
        session = db.SessionLocal()
        try:
            app.state.services = build_services(session)
        finally:
            session.close()
        logger.info("Support services started")

    yield

    services = getattr(app.state, "services", None)
    if services is not None:
        services.close()
        logger.info("Support services stopped")


app = FastAPI(
    title="Support Bot API",
    description="Chat-to-case support assistant for e-commerce orders",
    version="1.0.0",
    lifespan=lifespan,
    openapi_tags=[
        {"name": "Health", "description": "Health check endpoints"},
        {"name": "Account", "description": "Signup, login and logout"},
        {"name": "Users", "description": "Profiles, orders and cases"},
        {"name": "Chat", "description": "Product selection and chat turns"},
        {"name": "Admin - Cases", "description": "Case triage for support staff"},
    ],
)

# Add rate limit exception handler
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health", tags=["Health"])
def health() -> Dict[str, str]:
    """Health check endpoint. Returns ok if the service is running."""
    return {"status": "ok"}


# ---------- Routers ----------

api_router = APIRouter(prefix="/api")
api_router.include_router(account_router)
api_router.include_router(users_router)
api_router.include_router(chat_router)
api_router.include_router(admin_cases_router)

app.include_router(api_router)
