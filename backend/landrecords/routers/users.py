from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..db import get_db
from ..errors import NotFound, ValidationFailure
from ..models import User, get_user_by_username
from ..schemas import AddUserRequest, SuccessResponse, UpdatePasswordRequest
from ..security import hash_password

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


@router.post("/add", response_model=SuccessResponse)
def add_user(payload: AddUserRequest, db: Session = Depends(get_db)) -> SuccessResponse:
    username = payload.username.strip()
    if not username:
        raise ValidationFailure("username is required")
    if get_user_by_username(db, username):
        raise ValidationFailure("Username already exists")
    u = User(
        username=username,
        password_hash=hash_password(payload.password),
        email=(payload.email or "").strip() or None,
        name=(payload.name or "").strip() or None,
        role=(payload.role or "").strip() or "user",
    )
    db.add(u)
    try:
        db.commit()
    except IntegrityError:
        # Lost a race with a concurrent insert of the same username
        db.rollback()
        raise ValidationFailure("Username already exists")
    logger.info("Created user %s (role=%s)", username, u.role)
    return SuccessResponse()


@router.post("/update-password", response_model=SuccessResponse)
def update_password(payload: UpdatePasswordRequest, db: Session = Depends(get_db)) -> SuccessResponse:
    u = db.get(User, payload.userId)
    if not u:
        raise NotFound("User not found")
    u.password_hash = hash_password(payload.newPassword)
    # A pending reset link must not outlive an explicit password change
    u.reset_token = None
    u.reset_expires = None
    db.add(u)
    db.commit()
    return SuccessResponse()
