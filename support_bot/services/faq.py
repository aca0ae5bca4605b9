"""
FAQ Matching Service
====================

Answers common questions ("How do I return an item?") with canned text before
the chat pipeline spends a generation call.

Matching:
---------
1. Embed the user's message with the embedding model.
2. Compare it by cosine similarity with the stored embedding of every FAQ
   question, in insertion order.
3. Keep the highest score. Ties keep the earliest entry, because a later entry
   only replaces the best one when its score is strictly greater.
4. Return the answer when the best score reaches the threshold (default 0.8),
   otherwise None.

Embedding failures raise EmbeddingUnavailable. The chat orchestrator treats
that as "no FAQ match" so a flaky embedding service never fails a chat turn.

Seeding:
--------
init_faqs() stores FAQ collections in the database together with their
question embeddings, skipping questions already stored for the same domain.
"""

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence

import openai
from openai import OpenAI
from sqlalchemy.orm import Session

from .. import config
from ..errors import EmbeddingUnavailable
from ..models import Faq

logger = logging.getLogger(__name__)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """dot(a, b) / (|a| * |b|); 0.0 when either vector has zero length."""
    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return dot / (norm_a * norm_b)


class OpenAIEmbedder:
    """Turns text into an embedding vector using the OpenAI embeddings API."""

    def __init__(self, client: OpenAI, model: str = None) -> None:
        self.client = client
        self.model = model or config.EMBEDDING_MODEL

    def embed(self, text: str) -> List[float]:
        try:
            response = self.client.embeddings.create(model=self.model, input=text)
        except openai.OpenAIError as e:
            logger.error("Embedding error: %s", e)
            raise EmbeddingUnavailable("Failed to get embedding") from e
        if not response.data:
            raise EmbeddingUnavailable("Embedding response contained no vectors")
        return list(response.data[0].embedding)


@dataclass(frozen=True)
class FaqEntry:
    question: str
    answer: str
    embedding: Sequence[float]
    domain: Optional[str] = None


class FaqMatcher:
    def __init__(self, embedder, entries: Iterable[FaqEntry] = (), threshold: float = None) -> None:
        self.embedder = embedder
        self.entries: List[FaqEntry] = list(entries)
        self.threshold = threshold if threshold is not None else config.FAQ_SIMILARITY_THRESHOLD

    @classmethod
    def from_db(cls, db: Session, embedder, threshold: float = None) -> "FaqMatcher":
        return cls(embedder, load_faq_entries(db), threshold=threshold)

    def reload(self, db: Session) -> None:
        self.entries = load_faq_entries(db)

    def match(self, query: str) -> Optional[str]:
        """Return the canned answer for query, or None if nothing is close enough."""
        if not self.entries:
            return None

        query_embedding = self.embedder.embed(query)

        best_score = float("-inf")
        best_answer = None
        for entry in self.entries:
            score = cosine_similarity(query_embedding, entry.embedding)
            if score > best_score:
                best_score = score
                best_answer = entry.answer

        if best_score >= self.threshold:
            logger.debug("FAQ match with similarity %.3f", best_score)
            return best_answer
        return None


def load_faq_entries(db: Session) -> List[FaqEntry]:
    rows = db.query(Faq).order_by(Faq.id).all()
    return [
        FaqEntry(question=row.question, answer=row.answer, embedding=row.embedding or [], domain=row.domain)
        for row in rows
    ]


def init_faqs(db: Session, embedder, collections: Iterable[Dict[str, Any]]) -> int:
    """
    Store FAQ collections with embeddings.

    Each collection is {"domain": str, "faqs": [{"question": str, "answer": str}, ...]}.
    A faq may carry its own "domain" which takes precedence.

    Returns:
        Number of FAQs added.
    """
    added = 0
    for collection in collections:
        collection_domain = collection.get("domain")
        for faq in collection.get("faqs", []):
            domain = faq.get("domain", collection_domain)
            existing = db.query(Faq).filter(
                Faq.question == faq["question"],
                Faq.domain == domain,
            ).first()
            if existing:
                continue

            embedding = embedder.embed(faq["question"])
            db.add(Faq(question=faq["question"], answer=faq["answer"], domain=domain, embedding=embedding))
            db.commit()
            added += 1
            logger.info("Added FAQ for domain %s: %s", domain, faq["question"])
    return added
