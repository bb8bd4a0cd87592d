from __future__ import annotations

from urllib.parse import urlencode

import httpx
from flask import current_app

from linxify.extensions import db
from linxify.models import User, as_utc, hash_token, utcnow
from linxify.services.common import ValidationError, clean_text
from linxify.services.mailer import send_password_reset_email


MIN_PASSWORD_LENGTH = 8
RESET_REQUESTED_MESSAGE = "If that email exists, a reset link has been sent."


def normalize_email(raw) -> str:
    return clean_text(raw).lower()


def _validate_password(password: str) -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"password must be at least {MIN_PASSWORD_LENGTH} characters"
        )


def register_user(email, password, name=None) -> User:
    email = normalize_email(email)
    password = password or ""
    if not email or not password:
        raise ValidationError("email and password are required")
    if "@" not in email:
        raise ValidationError("email address is invalid")
    _validate_password(password)
    if User.query.filter_by(email=email).first():
        raise ValidationError("a user with this email already exists")

    user = User(email=email, name=clean_text(name) or None)
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    return user


def authenticate(email, password) -> User | None:
    user = User.query.filter_by(email=normalize_email(email)).first()
    if not user or not user.check_password(password or ""):
        return None
    return user


def build_reset_url(token: str) -> str:
    base_url = current_app.config["BASE_URL"]
    return f"{base_url}/auth/reset-password?{urlencode({'token': token})}"


def request_password_reset(email) -> None:
    """Issue a reset token and mail it, if ``email`` belongs to a user.

    Callers answer with the same message either way so account existence
    is never revealed.
    """
    email = normalize_email(email)
    if not email:
        raise ValidationError("email is required")

    user = User.query.filter_by(email=email).first()
    if not user:
        return

    token = user.issue_reset_token(current_app.config["RESET_TOKEN_TTL_MINUTES"])
    db.session.commit()

    try:
        send_password_reset_email(user.email, build_reset_url(token))
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        current_app.logger.warning(
            "Failed to send password reset email to user %s: %s", user.id, exc
        )


def find_user_by_reset_token(token) -> User | None:
    token = clean_text(token)
    if not token:
        return None
    user = User.query.filter_by(reset_token_hash=hash_token(token)).first()
    if not user or not user.reset_token_expires_at:
        return None
    if as_utc(user.reset_token_expires_at) <= utcnow():
        return None
    return user


def reset_password(token, password) -> User:
    if not clean_text(token) or not password:
        raise ValidationError("missing token or password")
    user = find_user_by_reset_token(token)
    if not user:
        raise ValidationError("invalid or expired token")
    _validate_password(password)

    user.set_password(password)
    user.clear_reset_token()
    db.session.commit()
    return user


def clear_expired_reset_tokens() -> int:
    now = utcnow()
    users = User.query.filter(User.reset_token_expires_at.is_not(None)).all()
    cleared = 0
    for user in users:
        if as_utc(user.reset_token_expires_at) <= now:
            user.clear_reset_token()
            cleared += 1
    if cleared:
        db.session.commit()
    return cleared
