"""
Case Repository
===============

Durable storage for support cases. A case is identified by the triple
(user_id, order_id, product_index) and the database enforces at most one case
per triple with a unique constraint.

Upsert Semantics:
-----------------
upsert_case() never creates a second case for the same triple:
- not found: insert a new case with the given responses as its thread
- found: refresh description and priority, append the responses, bump
  updated_at, and reopen the case if it had been resolved

Concurrency:
------------
Two layers keep concurrent upserts for the same triple safe:

1. CaseLocks: a fixed set of striped threading.Locks. The same triple always
   maps to the same lock, so upserts for one triple are serialized within a
   process while unrelated triples rarely contend.
2. Retry-on-conflict: if another process inserted the triple first, the
   INSERT fails with IntegrityError. We roll back and retry, and the retry
   takes the update path. After CASE_UPSERT_MAX_RETRIES attempts
   PersistenceConflict is raised.

Admin Operations:
-----------------
- update_case(): status / priority changes and product edits staged in
  productChanges (applied to the order, which recomputes its total)
- add_admin_response(): append an admin-authored reply
"""

import logging
import threading
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import case as sql_case
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .. import config
from ..errors import PersistenceConflict
from ..models import CASE_PRIORITIES, CASE_STATUSES, Case, CaseResponse, utcnow
from .orders import apply_product_changes

logger = logging.getLogger(__name__)


class CaseLocks:
    """Striped per-triple mutual exclusion."""

    def __init__(self, stripes: int = 64) -> None:
        self._locks = [threading.Lock() for _ in range(stripes)]

    def for_triple(self, user_id: int, order_id: str, product_index: int) -> threading.Lock:
        return self._locks[hash((user_id, order_id, product_index)) % len(self._locks)]


def get_case(db: Session, user_id: int, order_id: str, product_index: int) -> Optional[Case]:
    return db.query(Case).filter(
        Case.user_id == user_id,
        Case.order_id == order_id,
        Case.product_index == product_index,
    ).first()


def get_case_by_id(db: Session, case_id: int) -> Optional[Case]:
    return db.get(Case, case_id)


def _build_responses(responses: Sequence[Dict[str, Any]]) -> List[CaseResponse]:
    return [
        CaseResponse(
            admin_id=r.get("admin_id"),
            message=r["message"],
            timestamp=r.get("timestamp") or utcnow(),
            log_entry_id=r.get("log_entry_id"),
        )
        for r in responses
    ]


def _not_yet_folded(case: Case, responses: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Drop responses whose chat log entry is already part of the case thread."""
    folded = {r.log_entry_id for r in case.responses if r.log_entry_id}
    return [r for r in responses if not r.get("log_entry_id") or r["log_entry_id"] not in folded]


def upsert_case(
    db: Session,
    user_id: int,
    order_id: str,
    product_index: int,
    description: str,
    priority: str,
    responses: Sequence[Dict[str, Any]] = (),
    max_retries: int = None,
) -> Case:
    """
    Create or update the case for a triple and append responses to its thread.

    Args:
        responses: dicts with "message" and optional "timestamp", "admin_id"
            and "log_entry_id". Responses whose log_entry_id is already in
            the thread are skipped.

    Raises:
        PersistenceConflict: the unique-constraint race did not settle
    """
    if max_retries is None:
        max_retries = config.CASE_UPSERT_MAX_RETRIES

    for attempt in range(1, max_retries + 1):
        try:
            existing = get_case(db, user_id, order_id, product_index)
            if existing:
                existing.description = description
                existing.priority = priority
                existing.responses.extend(_build_responses(_not_yet_folded(existing, responses)))
                existing.updated_at = utcnow()
                if existing.status == "resolved":
                    logger.info("Reopening resolved case %s", existing.id)
                    existing.status = "open"
                db.commit()
                db.refresh(existing)
                logger.info("Updated case %s for order %s item %d", existing.id, order_id, product_index)
                return existing

            new_case = Case(
                user_id=user_id,
                order_id=order_id,
                product_index=product_index,
                description=description,
                priority=priority,
                status="open",
                responses=_build_responses(responses),
            )
            db.add(new_case)
            db.commit()
            db.refresh(new_case)
            logger.info("Created case %s for order %s item %d", new_case.id, order_id, product_index)
            return new_case

        except IntegrityError:
            db.rollback()
            logger.warning(
                "Case upsert conflict for user %s order %s item %d (attempt %d/%d)",
                user_id, order_id, product_index, attempt, max_retries,
            )

    raise PersistenceConflict(
        f"Could not upsert case for order {order_id} item {product_index} "
        f"after {max_retries} attempts"
    )


def list_cases(db: Session, status: Optional[str] = None) -> List[Case]:
    """All cases, high priority first, newest first within a priority."""
    query = db.query(Case)
    if status in CASE_STATUSES:
        query = query.filter(Case.status == status)
    priority_rank = sql_case((Case.priority == "high", 0), else_=1)
    return query.order_by(priority_rank, Case.created_at.desc(), Case.id.desc()).all()


def list_user_cases(db: Session, user_id: int) -> List[Case]:
    return (
        db.query(Case)
        .filter(Case.user_id == user_id)
        .order_by(Case.updated_at.desc(), Case.id.desc())
        .all()
    )


def update_case(
    db: Session,
    case: Case,
    status: Optional[str] = None,
    priority: Optional[str] = None,
    product_changes: Optional[Dict[str, Any]] = None,
) -> Case:
    """
    Apply an admin's changes to a case.

    Product changes are staged on the case and applied to the referenced
    product, which recomputes the order total.

    Raises:
        ValueError: unknown status or priority
        InvalidOrderOrProduct: the case points at a product that no longer exists
    """
    if status is not None and status not in CASE_STATUSES:
        raise ValueError(f"Invalid status: {status}")
    if priority is not None and priority not in CASE_PRIORITIES:
        raise ValueError(f"Invalid priority: {priority}")

    if status is not None:
        case.status = status
    if priority is not None:
        case.priority = priority

    if product_changes:
        case.product_changes = dict(product_changes)
        apply_product_changes(db, case.user_id, case.order_id, case.product_index, product_changes)

    case.updated_at = utcnow()
    db.commit()
    db.refresh(case)
    return case


def add_admin_response(db: Session, case: Case, admin_id: int, message: str) -> CaseResponse:
    response = CaseResponse(admin_id=admin_id, message=message, timestamp=utcnow())
    case.responses.append(response)
    case.updated_at = utcnow()
    db.commit()
    db.refresh(response)
    return response
