# =============================================================================
# lib/email.py - Transactional Email (Resend)
# =============================================================================
# Sends HTML email through Resend's HTTP API with httpx.
#
# Emails:
#   - welcome: after checkout.session.completed
#   - payment failed: after invoice.payment_failed (7-day grace period)
#   - cancellation: after customer.subscription.deleted
#   - maintenance reminder: from the periodic reminder task
#
# When RESEND_API_KEY is unset every send is skipped and reported as a
# success, so local development never needs an email account.
# =============================================================================

from __future__ import annotations

import html
import logging
from dataclasses import dataclass
from typing import Any

import httpx

from app.config import settings
from lib.utils import ApplicationError

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"
REQUEST_TIMEOUT_SECONDS = 10.0


class EmailError(ApplicationError):
    def __init__(
        self,
        message: str,
        code: str = "EMAIL_ERROR",
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, code=code, suggestion=suggestion, details=details)


@dataclass
class EmailResult:
    success: bool
    error: str | None = None
    skipped: bool = False


# Bullets shown in the welcome email per tier
TIER_FEATURES: dict[str, list[str]] = {
    "starter": [
        "Track your tank with a detailed profile",
        "Get 100 AI chat messages per day for personalized advice",
        "Log water parameters and track trends",
        "Set up maintenance schedules with reminders",
    ],
    "plus": [
        "Manage up to 5 tanks with full tracking",
        "Get 200 AI chat messages per day",
        "Use Photo Diagnosis to identify fish and diseases",
        "Receive proactive AI alerts for parameter trends",
        "Track equipment and replacement schedules",
    ],
    "pro": [
        "Unlimited tanks for your entire fishroom",
        "Unlimited AI chat messages",
        "Photo Diagnosis with 30 scans per day",
        "Equipment recommendations",
        "Proactive AI alerts for every tank",
    ],
}


# =============================================================================
# Sending
# =============================================================================

def send_email(to: str, subject: str, html_body: str) -> EmailResult:
    """
    Send one email. Never raises; failures are returned in EmailResult.
    """
    if not settings.email_enabled:
        logger.info(f"Email disabled, skipping '{subject}'")
        return EmailResult(success=True, skipped=True)

    try:
        response = httpx.post(
            RESEND_API_URL,
            headers={"Authorization": f"Bearer {settings.RESEND_API_KEY}"},
            json={
                "from": settings.RESEND_FROM_ADDRESS,
                "to": [to],
                "subject": subject,
                "html": html_body,
            },
            timeout=REQUEST_TIMEOUT_SECONDS,
        )
        response.raise_for_status()
    except httpx.HTTPError as e:
        logger.error(f"Failed to send '{subject}': {e}")
        return EmailResult(success=False, error=str(e))

    logger.info(f"Sent '{subject}'")
    return EmailResult(success=True)


# =============================================================================
# Templates
# =============================================================================

def _layout(heading: str, body: str, button_text: str | None = None, button_path: str | None = None) -> str:
    button = ""
    if button_text and button_path:
        button = (
            '<div style="text-align: center; margin: 30px 0;">'
            f'<a href="{settings.APP_URL}{button_path}" style="background: #0A2540; color: white; '
            'padding: 12px 30px; text-decoration: none; border-radius: 8px; font-weight: 600;">'
            f"{button_text}</a></div>"
        )

    return f"""<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><meta name="viewport" content="width=device-width, initial-scale=1"></head>
<body style="font-family: -apple-system, 'Segoe UI', Roboto, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
  <h1 style="color: #0A2540; text-align: center;">AquaBotAI</h1>
  <h2 style="color: #0A2540;">{heading}</h2>
  {body}
  {button}
  <hr style="border: none; border-top: 1px solid #eee; margin: 30px 0;">
  <p style="color: #999; font-size: 12px; text-align: center;">
    AquaBotAI - Your AI-Powered Aquarium Assistant<br>
    <a href="{settings.APP_URL}/settings" style="color: #999;">Manage email preferences</a>
  </p>
</body>
</html>"""


def _greeting(name: str | None, fallback: str) -> str:
    return f"Hi {html.escape(name)}" if name else fallback


def send_welcome_email(email: str, name: str | None, tier: str) -> EmailResult:
    tier_name = tier.capitalize()
    features = "".join(f"<li>{item}</li>" for item in TIER_FEATURES.get(tier, []))
    body = (
        f"<p>Thank you for subscribing to <strong>AquaBotAI {tier_name}</strong>! "
        "Your AI-powered aquarium assistant is ready to help you keep your fish happy and healthy.</p>"
        f'<h3 style="color: #1B998B;">What you can do now:</h3><ul>{features}</ul>'
    )
    return send_email(
        email,
        f"Welcome to AquaBotAI {tier_name}!",
        _layout(f"{_greeting(name, 'Welcome')}!", body, "Go to Dashboard", "/dashboard"),
    )


def send_payment_failed_email(email: str, name: str | None) -> EmailResult:
    body = (
        "<p>We were unable to process your subscription payment. Your account is still active, "
        "and you have a <strong>7-day grace period</strong> to update your payment method.</p>"
        "<ul><li>Your subscription remains active for 7 more days</li>"
        "<li>We'll automatically retry the payment</li>"
        "<li>If payment continues to fail, your account will be downgraded to Free</li></ul>"
    )
    return send_email(
        email,
        "Action Required: Payment Failed - AquaBotAI",
        _layout(f"{_greeting(name, 'Hi there')},", body, "Update Payment Method", "/billing"),
    )


def send_cancellation_email(email: str, name: str | None) -> EmailResult:
    body = (
        "<p>Your AquaBotAI subscription has been canceled and your account is now on the "
        "<strong>Free</strong> plan. Your tanks, livestock and parameter history are kept.</p>"
        "<p>You can resubscribe at any time to get your premium features back.</p>"
    )
    return send_email(
        email,
        "Your AquaBotAI subscription has been canceled",
        _layout(f"{_greeting(name, 'Hi there')},", body, "View Plans", "/billing"),
    )


def send_maintenance_reminder_email(
    email: str,
    name: str | None,
    task_title: str,
    tank_name: str,
    due_label: str,
) -> EmailResult:
    body = (
        f"<p><strong>{html.escape(task_title)}</strong> for "
        f"<strong>{html.escape(tank_name)}</strong> is due {html.escape(due_label)}.</p>"
        "<p>Mark it complete in the app once you're done so the next reminder is scheduled.</p>"
    )
    return send_email(
        email,
        f"Reminder: {task_title} ({tank_name})",
        _layout(f"{_greeting(name, 'Hi there')},", body, "Open Maintenance", "/dashboard"),
    )
