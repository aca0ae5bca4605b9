"""
Account Routes for Support Bot
==============================

Endpoints:
----------
- POST /signup: Create an account
- POST /login: Obtain a bearer token
- POST /logout: End the chat session

Session Hygiene:
----------------
Both login and logout clear the user's selected product and conversation
log. A selection from an earlier session must never carry over into a new
one.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..auth import create_access_token, get_current_user, hash_password, verify_password
from ..container import SupportServices, get_services
from ..db import get_db
from ..models import User
from ..schemas.auth import LoginRequest, MessageResponse, SignupRequest, TokenResponse


logger = logging.getLogger(__name__)

account_router = APIRouter(tags=["Account"])


@account_router.post("/signup", response_model=MessageResponse)
def signup(payload: SignupRequest, db: Session = Depends(get_db)) -> MessageResponse:
    if db.query(User).filter(User.email == payload.email).first():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already registered")

    user = User(
        name=payload.name,
        email=payload.email,
        password_hash=hash_password(payload.password),
        role=payload.role,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already registered")

    logger.info("New %s account created: %s", user.role, user.id)
    return MessageResponse(message="Signup successful")


@account_router.post("/login", response_model=TokenResponse)
def login(
    payload: LoginRequest,
    db: Session = Depends(get_db),
    services: SupportServices = Depends(get_services),
) -> TokenResponse:
    user = db.query(User).filter(User.email == payload.email).first()
    if not user or not verify_password(payload.password, user.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    services.orchestrator.reset_session(user.id)
    logger.info("User %s logged in", user.id)
    return TokenResponse(token=create_access_token(user), role=user.role, user_id=user.id)


@account_router.post("/logout", response_model=MessageResponse)
def logout(
    user: User = Depends(get_current_user),
    services: SupportServices = Depends(get_services),
) -> MessageResponse:
    services.orchestrator.reset_session(user.id)
    logger.info("User %s logged out", user.id)
    return MessageResponse(message="Logout successful")
