"""
Application service container.

Builds the long-lived collaborators of the chat pipeline once at startup and
hands them to routes through app.state. Nothing here is a module-level
singleton, so tests can construct a container from fakes and inject it.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Request
from sqlalchemy.orm import Session

from .cache import build_cache
from .services.chat_log import ConversationLogStore
from .services.context_store import SelectedProductContextStore
from .services.faq import FaqMatcher, OpenAIEmbedder
from .services.generation import TextGenerationGateway, build_openai_client
from .services.orchestrator import ChatOrchestrator

logger = logging.getLogger(__name__)


@dataclass
class SupportServices:
    cache: object
    orchestrator: ChatOrchestrator
    faq_matcher: Optional[FaqMatcher] = None

    def close(self) -> None:
        self.cache.close()


def build_services(db: Session, cache=None, openai_client=None) -> SupportServices:
    """Wire the production pipeline: cache, OpenAI gateway, FAQ matcher, stores."""
    cache = cache if cache is not None else build_cache()
    client = openai_client if openai_client is not None else build_openai_client()

    faq_matcher = FaqMatcher.from_db(db, OpenAIEmbedder(client))
    logger.info("Loaded %d FAQ entries", len(faq_matcher.entries))

    orchestrator = ChatOrchestrator(
        gateway=TextGenerationGateway(client),
        faq_matcher=faq_matcher,
        context_store=SelectedProductContextStore(cache),
        log_store=ConversationLogStore(cache),
    )
    return SupportServices(cache=cache, orchestrator=orchestrator, faq_matcher=faq_matcher)


def get_services(request: Request) -> SupportServices:
    """FastAPI dependency returning the container attached at startup."""
    return request.app.state.services
