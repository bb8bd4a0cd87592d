from __future__ import annotations

import httpx
from flask import current_app


RESET_SUBJECT = "Reset your Linxify password"


def _reset_email_bodies(reset_url: str, ttl_minutes: int) -> tuple[str, str]:
    html = f"""
      <div style="font-family:system-ui,Segoe UI,Roboto,Helvetica,Arial,sans-serif;line-height:1.6;color:#111">
        <h2>Reset your password</h2>
        <p>We received a request to reset your Linxify password.</p>
        <p>This link will expire in <strong>{ttl_minutes} minutes</strong>:</p>
        <p><a href="{reset_url}">Reset Password</a></p>
        <p>Or copy and paste this URL into your browser:</p>
        <p style="word-break:break-all;"><a href="{reset_url}">{reset_url}</a></p>
        <p>If you didn't request this, you can safely ignore this email.</p>
      </div>
    """
    text = (
        f"Reset your Linxify password (expires in {ttl_minutes} minutes): "
        f"{reset_url}"
    )
    return html, text


def send_email(to: str, subject: str, html: str, text: str) -> bool:
    config = current_app.config
    api_key = config.get("RESEND_API_KEY")
    if not api_key:
        current_app.logger.info(
            "Email provider not configured; skipping '%s' to %s", subject, to
        )
        return False

    response = httpx.post(
        config["RESEND_API_URL"],
        headers={"Authorization": f"Bearer {api_key}"},
        json={
            "from": config["RESEND_FROM"],
            "to": [to],
            "subject": subject,
            "html": html,
            "text": text,
        },
        timeout=config["EMAIL_TIMEOUT"],
    )
    response.raise_for_status()
    return True


def send_password_reset_email(to: str, reset_url: str) -> bool:
    ttl_minutes = current_app.config["RESET_TOKEN_TTL_MINUTES"]
    html, text = _reset_email_bodies(reset_url, ttl_minutes)
    if not current_app.config.get("RESEND_API_KEY"):
        current_app.logger.info("Password reset link for %s: %s", to, reset_url)
    return send_email(to, RESET_SUBJECT, html, text)
