"""
Chat Orchestrator
=================

Turns one user message into one assistant reply, opening or updating a
support case along the way when the conversation calls for it.

Turn Pipeline:
--------------
1. **Context check**: the user must have selected an (order, product). No
   selection means NoProductSelected and nothing is written.
2. **FAQ short-circuit**: a close FAQ match is answered with its canned
   answer. No generation call and no case logic. Embedding failures count
   as "no match".
3. **Prompt assembly**: user identity, selected product, orders, the last
   few turns and the instruction block (see prompt_builder.py).
4. **Generate**: TextGenerationGateway. Any failure raises GenerationFailed
   and nothing is written.
5. **Extract**: split the reply into display text and an optional case
   directive (services/directive.py).
6. **Validate & persist**: validate the directive against a fresh read of the
   order, pick the priority, upsert the case, fold pending chat turns into the
   case thread and back-fill their caseId. Without a directive, a message
   with case-intent keywords that names the selected product opens a case
   anyway. Failures here are logged and never reach the user.
7. **Log & return**: append this turn to the conversation log and return
   the display text.

Fold-in:
--------
Log entries with caseId == null for the case's (orderId, productIndex) are
converted into "User: ..." / "Bot: ..." response pairs, followed by the
current turn's pair. Each response carries its entry id (log_entry_id).
The folded entries, and only those, are then stamped with the case id, and
the current turn is logged already stamped. A turn logged while the case
was being saved stays pending for the next fold. If the stamping itself
fails, the repository skips entry ids already in the thread, so no turn is
folded twice.

Concurrency:
------------
Step 6 runs under a per-triple lock (CaseLocks) and the repository retries
on unique-constraint conflicts, so double submits produce one case.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from .. import config
from ..errors import (
    EmbeddingUnavailable,
    EmptyMessage,
    GenerationError,
    GenerationFailed,
    InvalidOrderOrProduct,
    NoProductSelected,
    UpstreamRejected,
    UpstreamUnavailable,
    UserInputError,
)
from ..models import utcnow
from ..prompt_builder import build_chat_prompt
from . import cases as case_repo
from .chat_log import ConversationLogStore, new_log_entry
from .context_store import SelectedProductContextStore
from .directive import ExtractionResult, extract_directive
from .orders import get_user, product_context, resolve_product, serialize_order
from .priority import classify

logger = logging.getLogger(__name__)

CASE_INTENT_KEYWORDS = (
    "create case",
    "report issue",
    "problem with",
    "complaint",
    "refund",
    "return",
    "defective",
    "delivery issue",
)


@dataclass
class ChatTurnResult:
    reply: str
    case_id: Optional[int] = None
    from_faq: bool = False


def has_case_intent(message: str, product_name: Optional[str]) -> bool:
    """True when the message asks for a case and names the selected product."""
    if not product_name:
        return False
    text = message.lower()
    if not any(keyword in text for keyword in CASE_INTENT_KEYWORDS):
        return False
    return product_name.lower() in text


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            pass
    return utcnow()


def log_entries_to_responses(entries: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    responses = []
    for entry in entries:
        timestamp = _parse_timestamp(entry.get("timestamp"))
        for line in (f"User: {entry.get('prompt', '')}", f"Bot: {entry.get('reply', '')}"):
            responses.append({"message": line, "timestamp": timestamp, "log_entry_id": entry.get("id")})
    return responses


class ChatOrchestrator:
    def __init__(
        self,
        gateway,
        faq_matcher,
        context_store: SelectedProductContextStore,
        log_store: ConversationLogStore,
        case_locks: case_repo.CaseLocks = None,
        history_turns: int = None,
    ) -> None:
        self.gateway = gateway
        self.faq_matcher = faq_matcher
        self.context_store = context_store
        self.log_store = log_store
        self.case_locks = case_locks or case_repo.CaseLocks()
        self.history_turns = history_turns if history_turns is not None else config.CHAT_HISTORY_TURNS

    # -------------------------------------------------------------------------
    # Selection lifecycle
    # -------------------------------------------------------------------------

    def select_product(self, db: Session, user_id: int, order_id: str, product_index: int) -> Dict[str, Any]:
        """Scope the user's chat to one product. Raises InvalidOrderOrProduct."""
        order, product = resolve_product(db, user_id, order_id, product_index)
        context = product_context(order, product, product_index)
        self.context_store.set(user_id, context)
        return context

    def clear_selection(self, user_id: int) -> None:
        self.context_store.clear(user_id)

    def reset_session(self, user_id: int) -> None:
        """Forget the selection and the conversation log (login / logout)."""
        self.context_store.clear(user_id)
        self.log_store.clear(user_id)

    # -------------------------------------------------------------------------
    # Chat turn
    # -------------------------------------------------------------------------

    def handle_chat_turn(self, db: Session, user_id: int, message: str) -> ChatTurnResult:
        """
        Answer one chat message.

        Raises:
            EmptyMessage: blank message
            NoProductSelected: no active product selection
            GenerationFailed: the generation service could not answer
        """
        message = (message or "").strip()
        if not message:
            raise EmptyMessage()

        selected = self.context_store.get(user_id)
        if not selected:
            raise NoProductSelected()
        order_id = selected.get("orderId")
        product_index = selected.get("productIndex")

        faq_answer = self._check_faq(message)
        if faq_answer is not None:
            self._append_log(user_id, new_log_entry(message, faq_answer, order_id, product_index))
            return ChatTurnResult(reply=faq_answer, from_faq=True)

        prompt = self._build_prompt(db, user_id, selected, message)

        try:
            raw_reply = self.gateway.generate(prompt)
        except UpstreamRejected as e:
            logger.critical("Generation service rejected the request: %s", e)
            raise GenerationFailed() from e
        except (UpstreamUnavailable, GenerationError) as e:
            logger.error("Generation failed for user %s: %s", user_id, e)
            raise GenerationFailed() from e

        extraction = extract_directive(raw_reply)
        entry = new_log_entry(message, extraction.clean_text, order_id, product_index)

        case_id = None
        try:
            case_id = self._persist_case(db, user_id, selected, message, extraction, entry)
        except Exception:
            db.rollback()
            logger.exception("Case bookkeeping failed for user %s", user_id)

        entry["caseId"] = case_id
        self._append_log(user_id, entry)
        return ChatTurnResult(reply=extraction.clean_text, case_id=case_id)

    # -------------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------------

    def _check_faq(self, message: str) -> Optional[str]:
        if self.faq_matcher is None:
            return None
        try:
            return self.faq_matcher.match(message)
        except EmbeddingUnavailable as e:
            logger.warning("FAQ lookup skipped, embedding unavailable: %s", e)
            return None

    def _build_prompt(self, db: Session, user_id: int, selected: Dict[str, Any], message: str) -> str:
        user = get_user(db, user_id)
        if user is None:
            raise UserInputError("User not found")

        history = self.log_store.recent(user_id, self.history_turns)
        if not history:
            history = self._history_from_case(db, user_id, selected)

        return build_chat_prompt(
            user={"name": user.name, "email": user.email, "role": user.role},
            selected=selected,
            message=message,
            history=history,
            orders=[serialize_order(order) for order in user.orders],
            history_turns=self.history_turns,
        )

    def _history_from_case(self, db: Session, user_id: int, selected: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Rebuild prompt history from the case thread when the log cache is empty."""
        case = case_repo.get_case(db, user_id, selected.get("orderId"), selected.get("productIndex"))
        if case is None:
            return []

        turns: List[Dict[str, Any]] = []
        for response in case.responses:
            if response.admin_id is not None:
                continue
            if response.message.startswith("User: "):
                turns.append({"prompt": response.message[len("User: "):], "reply": ""})
            elif response.message.startswith("Bot: ") and turns:
                turns[-1]["reply"] = response.message[len("Bot: "):]
        return turns[-self.history_turns:] if self.history_turns > 0 else []

    def _case_target(
        self,
        db: Session,
        user_id: int,
        selected: Dict[str, Any],
        message: str,
        extraction: ExtractionResult,
    ) -> Optional[Tuple[str, int, str, str]]:
        """Decide (order_id, product_index, description, priority) for this turn, if any."""
        directive = extraction.directive

        if directive is not None:
            order_id, product_index = directive.order_id, directive.product_index
            description = directive.description
            priority = directive.priority or classify(description)
        elif has_case_intent(message, selected.get("productName")):
            order_id, product_index = selected.get("orderId"), selected.get("productIndex")
            description = message
            priority = classify(message)
            logger.info("No directive in reply; opening case from message keywords")
        else:
            return None

        try:
            resolve_product(db, user_id, order_id, product_index)
        except InvalidOrderOrProduct as e:
            logger.warning("Dropping case request for user %s: %s", user_id, e)
            return None

        return order_id, product_index, description, priority

    def _persist_case(
        self,
        db: Session,
        user_id: int,
        selected: Dict[str, Any],
        message: str,
        extraction: ExtractionResult,
        entry: Dict[str, Any],
    ) -> Optional[int]:
        target = self._case_target(db, user_id, selected, message, extraction)
        if target is None:
            return None
        order_id, product_index, description, priority = target

        with self.case_locks.for_triple(user_id, order_id, product_index):
            pending = [e for _, e in self.log_store.pending_for(user_id, order_id, product_index)]
            responses = log_entries_to_responses(pending + [entry])

            case = case_repo.upsert_case(
                db,
                user_id=user_id,
                order_id=order_id,
                product_index=product_index,
                description=description,
                priority=priority,
                responses=responses,
            )
            try:
                self.log_store.backfill(user_id, [e["id"] for e in pending], case.id)
            except Exception:
                # the thread already holds these entries; a later fold skips them by id
                logger.exception("Back-fill failed for case %s", case.id)

        return case.id

    def _append_log(self, user_id: int, entry: Dict[str, Any]) -> None:
        try:
            self.log_store.append(user_id, entry)
        except Exception:
            logger.exception("Could not append chat log entry for user %s", user_id)
