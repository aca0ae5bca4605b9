"""
Configuration Module for Support Bot
====================================

This module centralizes all configuration settings, environment variables, and
constants used throughout the Support Bot application. Values are parsed once
at import time; tests override them by patching the module attributes.

Configuration Categories:
-------------------------
- **Logging**: Level and format for the application loggers, plus the
  client libraries kept quiet outside DEBUG.

- **Database**: Durable store for users, orders, cases and FAQs.

- **Cache**: Short-lived per-user state (selected product, chat log). Uses
  Redis when REDIS_URL is set, otherwise an in-process memory cache.

- **Text Generation**: Ranked list of OpenAI models tried in order, with a
  per-attempt timeout.

- **FAQ Matching**: Embedding model and similarity threshold for canned
  answers.

- **Chat Pipeline**: TTLs, history window and case bookkeeping retries.

- **Authentication**: JWT signing settings for bearer tokens.

- **Rate Limiting / CORS / Input Validation**: API protection settings.

Environment Variables:
----------------------
- DATABASE_URL: SQLAlchemy URL (default: "sqlite:///./support_bot.db")
- REDIS_URL: Redis connection URL (default: unset, memory cache)
- OPENAI_API_KEY: API key for generation and embeddings
- LLM_MODELS: Comma-separated model priority list
- LLM_TIMEOUT_SECONDS: Ceiling per model attempt (default: 30)
- EMBEDDING_MODEL: Embedding model name (default: "text-embedding-3-small")
- FAQ_SIMILARITY_THRESHOLD: Minimum cosine similarity (default: 0.8)
- CHAT_LOG_TTL_SECONDS: Chat log expiry (default: 86400)
- SELECTION_TTL_SECONDS: Selected product expiry (default: 3600)
- CHAT_HISTORY_TURNS: Prior turns included in prompts (default: 5)
- JWT_SECRET_KEY / ACCESS_TOKEN_EXPIRE_MINUTES: Token settings
- RATE_LIMIT_CHAT / RATE_LIMIT_ENABLED: Chat throttling
- CORS_ORIGINS: Comma-separated allowed origins (default: "*")
- MAX_MESSAGE_LENGTH: Max user message length (default: 2000)
- LOG_LEVEL: Level for the support_bot loggers (default: "INFO")
"""

import os
from typing import List

from dotenv import load_dotenv

load_dotenv()


# =============================================================================
# Database Configuration
# =============================================================================

DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./support_bot.db")


# =============================================================================
# Logging Configuration
# =============================================================================

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT: str = "%Y-%m-%d %H:%M:%S"

# Client libraries held at WARNING unless the app runs at DEBUG
QUIET_LOGGERS: List[str] = [
    "httpx",
    "httpcore",
    "openai",
    "sqlalchemy.engine",
    "redis",
    "passlib",
]


# =============================================================================
# Cache Configuration
# =============================================================================
# The cache holds advisory state only; a miss always falls back to
# "nothing selected" / "no history".

REDIS_URL: str = os.getenv("REDIS_URL", "")

# Bounded retry for transient cache/store connection errors
STORE_RETRY_ATTEMPTS: int = int(os.getenv("STORE_RETRY_ATTEMPTS", "3"))
STORE_RETRY_BASE_DELAY: float = float(os.getenv("STORE_RETRY_BASE_DELAY", "0.1"))


# =============================================================================
# Text Generation Configuration
# =============================================================================

OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "")

# Models are tried in this order; quota errors and timeouts move to the next
_llm_models_env = os.getenv("LLM_MODELS", "gpt-4o,gpt-4o-mini,gpt-3.5-turbo")
LLM_MODELS: List[str] = [
    model.strip()
    for model in _llm_models_env.split(",")
    if model.strip()
]

LLM_TIMEOUT_SECONDS: float = float(os.getenv("LLM_TIMEOUT_SECONDS", "30"))


# =============================================================================
# FAQ Matching Configuration
# =============================================================================

EMBEDDING_MODEL: str = os.getenv("EMBEDDING_MODEL", "text-embedding-3-small")
FAQ_SIMILARITY_THRESHOLD: float = float(os.getenv("FAQ_SIMILARITY_THRESHOLD", "0.8"))


# =============================================================================
# Chat Pipeline Configuration
# =============================================================================

CHAT_LOG_TTL_SECONDS: int = int(os.getenv("CHAT_LOG_TTL_SECONDS", "86400"))  # 24 hours
SELECTION_TTL_SECONDS: int = int(os.getenv("SELECTION_TTL_SECONDS", "3600"))  # 1 hour
CHAT_HISTORY_TURNS: int = int(os.getenv("CHAT_HISTORY_TURNS", "5"))
CASE_UPSERT_MAX_RETRIES: int = int(os.getenv("CASE_UPSERT_MAX_RETRIES", "3"))


# =============================================================================
# Authentication Configuration
# =============================================================================

JWT_SECRET_KEY: str = os.getenv("JWT_SECRET_KEY", "change_me_long_secret")
JWT_ALGORITHM: str = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))


# =============================================================================
# Rate Limiting Configuration
# =============================================================================
# Rate limit format: "X per Y" where Y is second, minute, hour, or day

RATE_LIMIT_CHAT: str = os.getenv("RATE_LIMIT_CHAT", "30 per minute")
RATE_LIMIT_ENABLED: bool = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"


def get_rate_limit_chat() -> str:
    """
    Return the current chat rate limit.

    This function allows dynamic override in tests without modifying
    the module-level constant.
    """
    return RATE_LIMIT_CHAT


# =============================================================================
# Input Validation Configuration
# =============================================================================

MAX_MESSAGE_LENGTH: int = int(os.getenv("MAX_MESSAGE_LENGTH", "2000"))


# =============================================================================
# CORS Configuration
# =============================================================================
# Format: comma-separated list of origins. Default "*" is for development only.

_cors_origins_env = os.getenv("CORS_ORIGINS", "")
CORS_ORIGINS: List[str] = [
    origin.strip()
    for origin in _cors_origins_env.split(",")
    if origin.strip()
] or ["*"]
