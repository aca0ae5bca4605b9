"""
User Routes for Support Bot
===========================

Endpoints:
----------
- GET /user/{id}: Profile and orders
- GET /user/{id}/cases: The user's support cases

Users may only read their own data; admins may read anyone's.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..db import get_db
from ..models import User
from ..schemas.cases import CaseOut
from ..schemas.orders import UserOut
from ..services import cases as case_repo


logger = logging.getLogger(__name__)

users_router = APIRouter(prefix="/user", tags=["Users"])


def _load_visible_user(db: Session, requester: User, user_id: int) -> User:
    if requester.id != user_id and requester.role != "admin":
        logger.info("Unauthorized access attempt by user %s for user %s", requester.id, user_id)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Unauthorized access")

    user = db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


@users_router.get("/{user_id}", response_model=UserOut)
def get_user_profile(
    user_id: int,
    db: Session = Depends(get_db),
    requester: User = Depends(get_current_user),
) -> UserOut:
    user = _load_visible_user(db, requester, user_id)
    return UserOut.model_validate(user)


@users_router.get("/{user_id}/cases", response_model=List[CaseOut])
def get_user_cases(
    user_id: int,
    db: Session = Depends(get_db),
    requester: User = Depends(get_current_user),
) -> List[CaseOut]:
    user = _load_visible_user(db, requester, user_id)
    return [CaseOut.model_validate(c) for c in case_repo.list_user_cases(db, user.id)]
