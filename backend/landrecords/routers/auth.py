from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..config import settings
from ..db import get_db
from ..errors import InvalidCredentials, InvalidResetToken
from ..mailer import Mailer, get_mailer
from ..metrics import counter_inc
from ..models import User, get_user_by_identifier, get_user_by_username
from ..schemas import (
    ForgotPasswordRequest,
    LoginRequest,
    MessageResponse,
    ResetPasswordRequest,
    UserOut,
)
from ..security import hash_password, new_reset_token, reset_expiry, utcnow, verify_password

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])

# Same answer whether or not the identifier matched an account
FORGOT_PASSWORD_MESSAGE = "If an account matches, a password reset link has been sent."
RESET_DONE_MESSAGE = "Password has been reset"


@router.post("/login", response_model=UserOut)
def login(payload: LoginRequest, db: Session = Depends(get_db)) -> UserOut:
    u = get_user_by_username(db, payload.username)
    if not u or not verify_password(
        payload.password, u.password_hash, allow_legacy=settings.allow_legacy_plaintext_passwords
    ):
        counter_inc("auth_login_total", {"result": "failure"})
        raise InvalidCredentials()
    counter_inc("auth_login_total", {"result": "success"})
    return UserOut.model_validate(u)


def _reset_mail(link: str, ttl_seconds: int) -> tuple[str, str]:
    minutes = max(1, ttl_seconds // 60)
    body = (
        "A password reset was requested for your account.\n\n"
        f"Open this link within {minutes} minutes to choose a new password:\n{link}\n\n"
        "If you did not request this, ignore this message."
    )
    html = (
        "<p>A password reset was requested for your account.</p>"
        f"<p><a href='{link}'>Choose a new password</a> (valid for {minutes} minutes).</p>"
        "<p>If you did not request this, ignore this message.</p>"
    )
    return body, html


@router.post("/forgot-password", response_model=MessageResponse)
def forgot_password(
    payload: ForgotPasswordRequest,
    db: Session = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
) -> MessageResponse:
    u = get_user_by_identifier(db, payload.identifier)
    if u is None:
        logger.info("Password reset requested for an unknown identifier")
        return MessageResponse(message=FORGOT_PASSWORD_MESSAGE)

    # Overwriting keeps at most one live token per user
    ttl = settings.reset_token_ttl_seconds
    token = new_reset_token()
    u.reset_token = token
    u.reset_expires = reset_expiry(ttl)
    db.add(u)
    db.commit()

    if not u.email:
        logger.warning("User %s has no e-mail address; reset link not sent", u.id)
        return MessageResponse(message=FORGOT_PASSWORD_MESSAGE)
    link = f"{settings.frontend_base_url.rstrip('/')}/reset-password?token={token}"
    body, html = _reset_mail(link, ttl)
    ok, err = mailer.send_mail(u.email, "Password reset", body, html=html)
    if not ok:
        logger.warning("Reset mail for user %s not delivered: %s", u.id, err)
    return MessageResponse(message=FORGOT_PASSWORD_MESSAGE)


@router.post("/reset-password", response_model=MessageResponse)
def reset_password(payload: ResetPasswordRequest, db: Session = Depends(get_db)) -> MessageResponse:
    token = (payload.token or "").strip()
    if not token:
        raise InvalidResetToken()
    # Conditional single-statement update: the token must still match and be unexpired at write time
    updated = (
        db.query(User)
        .filter(User.reset_token == token)
        .filter(User.reset_expires.is_not(None))
        .filter(User.reset_expires > utcnow())
        .update(
            {
                User.password_hash: hash_password(payload.password),
                User.reset_token: None,
                User.reset_expires: None,
            },
            synchronize_session=False,
        )
    )
    if not updated:
        db.rollback()
        raise InvalidResetToken()
    db.commit()
    return MessageResponse(message=RESET_DONE_MESSAGE)
