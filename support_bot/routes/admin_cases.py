"""
Admin Case Routes for Support Bot
=================================

Endpoints for support staff to triage and work on cases. All endpoints
require an admin bearer token.

Endpoints:
----------
- GET /admin/cases: All cases, high priority first (optional ?status=)
- GET /admin/orders: All orders across users
- GET /admin/case/{id}/unified-thread: Case thread merged with chat turns
  not yet folded into it
- PUT /case/{id}: Change status / priority, apply product changes
- POST /case/{id}/response: Add an admin reply to the case thread

Unified Thread:
---------------
A case's stored responses only contain chat turns that were folded in when
the case was created or updated. Turns the customer had since, for the same
order/product, still live in the conversation log. The unified thread shows
both, ordered by timestamp.
"""

import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session, selectinload

from ..auth import require_admin
from ..container import SupportServices, get_services
from ..db import get_db
from ..errors import InvalidOrderOrProduct
from ..models import Case, Order, User
from ..schemas.cases import (
    AdminResponseRequest,
    CaseOut,
    CaseResponseOut,
    CaseUpdateRequest,
    ThreadEntryOut,
    UnifiedThreadOut,
)
from ..schemas.orders import OrderOut
from ..services import cases as case_repo
from ..services.orchestrator import log_entries_to_responses


logger = logging.getLogger(__name__)

admin_cases_router = APIRouter(tags=["Admin - Cases"])


def _get_case_or_404(db: Session, case_id: int) -> Case:
    case = case_repo.get_case_by_id(db, case_id)
    if case is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Case not found")
    return case


# =============================================================================
# Listing
# =============================================================================

@admin_cases_router.get("/admin/cases", response_model=List[CaseOut])
def list_cases(
    status_filter: Optional[str] = Query(None, alias="status"),
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
) -> List[CaseOut]:
    return [CaseOut.model_validate(c) for c in case_repo.list_cases(db, status=status_filter)]


@admin_cases_router.get("/admin/orders", response_model=List[OrderOut])
def list_orders(
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
) -> List[OrderOut]:
    orders = (
        db.query(Order)
        .options(selectinload(Order.products))
        .order_by(Order.order_date.desc(), Order.id.desc())
        .all()
    )
    return [OrderOut.model_validate(o) for o in orders]


@admin_cases_router.get("/admin/case/{case_id}/unified-thread", response_model=UnifiedThreadOut)
def get_unified_thread(
    case_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
    services: SupportServices = Depends(get_services),
) -> UnifiedThreadOut:
    case = _get_case_or_404(db, case_id)

    thread = [
        ThreadEntryOut(
            source="case",
            admin_id=r.admin_id,
            message=r.message,
            timestamp=r.timestamp,
        )
        for r in case.responses
    ]

    folded = {r.log_entry_id for r in case.responses if r.log_entry_id}
    pending = [
        entry for _, entry in services.orchestrator.log_store.pending_for(
            case.user_id, case.order_id, case.product_index
        )
        if entry.get("id") not in folded
    ]
    for r in log_entries_to_responses(pending):
        thread.append(ThreadEntryOut(source="chat", message=r["message"], timestamp=r["timestamp"]))

    # stable sort keeps each "User:" before its "Bot:"
    thread.sort(key=lambda entry: entry.timestamp or datetime.min)

    return UnifiedThreadOut(case=CaseOut.model_validate(case), thread=thread)


# =============================================================================
# Case Updates
# =============================================================================

@admin_cases_router.put("/case/{case_id}", response_model=CaseOut)
def update_case(
    case_id: int,
    payload: CaseUpdateRequest,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
) -> CaseOut:
    case = _get_case_or_404(db, case_id)

    changes = None
    if payload.product_changes is not None:
        changes = payload.product_changes.model_dump(exclude_none=True)

    try:
        case = case_repo.update_case(
            db,
            case,
            status=payload.status,
            priority=payload.priority,
            product_changes=changes,
        )
    except (ValueError, InvalidOrderOrProduct) as e:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    logger.info("Admin %s updated case %s (status=%s, priority=%s)", admin.id, case.id, case.status, case.priority)
    return CaseOut.model_validate(case)


@admin_cases_router.post("/case/{case_id}/response", response_model=CaseResponseOut)
def add_case_response(
    case_id: int,
    payload: AdminResponseRequest,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
) -> CaseResponseOut:
    case = _get_case_or_404(db, case_id)
    response = case_repo.add_admin_response(db, case, admin.id, payload.message)
    logger.info("Admin %s replied to case %s", admin.id, case.id)
    return CaseResponseOut.model_validate(response)
