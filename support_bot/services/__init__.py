"""
Services Package for Support Bot
================================

This package contains the chat-to-case pipeline and the stores it depends on.

Available Services:
-------------------
- **generation**: Text generation gateway with ranked model fallback
- **faq**: Embedding-based FAQ matcher and FAQ seeding
- **priority**: Keyword priority classifier for case descriptions
- **directive**: Parser for the case directive appended to generated replies
- **context_store**: Per-user selected-product context (cache, TTL)
- **chat_log**: Per-user conversation log with case back-fill (cache, TTL)
- **orders**: Order lookup, positional product validation, order totals
- **cases**: Case repository (upsert, admin updates, listing)
- **orchestrator**: One chat turn end to end

Design Philosophy:
------------------
Services receive their collaborators (database session, cache, OpenAI client)
rather than creating them, so each one can be tested with fakes. The
application wires them together once at startup (see container.py).

Usage:
------
    from support_bot.services.orchestrator import ChatOrchestrator
    from support_bot.services import cases, orders
"""

from . import cases
from . import orders
from . import priority
from . import directive

__all__ = ["cases", "orders", "priority", "directive"]
