"""Transactional email templates and the category-routed send helpers."""

from __future__ import annotations

from datetime import date
from html import escape

from finchat.mail.base import EmailMessage
from finchat.mail.service import EmailCategory, EmailService, SendResult

DEFAULT_APP_URL = "https://waiveer.com"

_LAYOUT = """<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{title}</title>
</head>
<body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333; margin: 0; padding: 20px;">
  <div style="max-width: 600px; margin: 0 auto;">
    <h1>{title}</h1>
{body}
    <hr style="margin: 30px 0; border: none; border-top: 1px solid #eee;">
    <p style="font-size: 12px; color: #666;">
      {footer}
    </p>
  </div>
</body>
</html>
"""


def _page(title: str, body: str, footer: str) -> str:
    return _LAYOUT.format(title=escape(title), body=body, footer=footer)


def _base_url(app_url: str | None) -> str:
    return (app_url or DEFAULT_APP_URL).rstrip("/")


def welcome_general(full_name: str, app_url: str | None = None) -> tuple[str, str]:
    body = f"""    <p>Hello {escape(full_name)},</p>
    <p>Thank you for joining Waiveer. Your account has been created successfully and you can now access our platform.</p>
    <p>You can now:</p>
    <ul>
      <li>Browse and connect with experts</li>
      <li>Start conversations with professionals</li>
      <li>Access personalized recommendations</li>
    </ul>
    <p>To get started, visit: <a href="{_base_url(app_url)}/discover">Browse Experts</a></p>
    <p>If you have any questions, please contact our support team.</p>
    <p>Best regards,<br>
    The Waiveer Team</p>"""
    footer = "Waiveer - Professional Expert Platform<br>\n      This email was sent to confirm your account registration."
    return "Welcome to Waiveer", _page("Welcome to Waiveer", body, footer)


def expert_application_pending(full_name: str) -> tuple[str, str]:
    body = f"""    <p>Hello {escape(full_name)},</p>
    <p>We have received your expert application and it is currently under review.</p>
    <p><strong>Application Status:</strong> Under Review<br>
    <strong>Review Timeline:</strong> Up to 48 hours</p>
    <p>Our team will review your qualifications and experience. The review process includes:</p>
    <ol>
      <li>Verification of your credentials and experience</li>
      <li>Review of your expertise areas</li>
      <li>Final decision within 48 hours</li>
    </ol>
    <p>You will receive an email notification with our decision. Meanwhile, you can continue using Waiveer as a regular user.</p>
    <p>If you have any questions about your application, please contact us.</p>
    <p>Best regards,<br>
    The Waiveer Team</p>"""
    footer = "Waiveer - Professional Expert Platform<br>\n      This email was sent regarding your expert application."
    return "Expert Application Received", _page("Expert Application Received", body, footer)


def admin_notification(
    full_name: str,
    user_email: str,
    user_id: str,
    app_url: str | None = None,
    applied_on: date | None = None,
) -> tuple[str, str]:
    applied_on = applied_on or date.today()
    body = f"""    <p>A new expert application has been submitted and requires review.</p>
    <p><strong>Applicant Details:</strong></p>
    <ul>
      <li><strong>Name:</strong> {escape(full_name)}</li>
      <li><strong>Email:</strong> {escape(user_email)}</li>
      <li><strong>User ID:</strong> {escape(user_id)}</li>
      <li><strong>Application Date:</strong> {applied_on.month}/{applied_on.day}/{applied_on.year}</li>
    </ul>
    <p>Please review this application in the admin panel within 48 hours.</p>
    <p>Review Application: <a href="{_base_url(app_url)}/admin/expert-applications">Admin Panel</a></p>
    <p>Waiveer System</p>"""
    footer = "This is an automated notification for new expert applications."
    return f"New Expert Application: {full_name}", _page("New Expert Application", body, footer)


async def send_welcome_email(
    service: EmailService, to: str, full_name: str, app_url: str | None = None
) -> SendResult:
    subject, html = welcome_general(full_name, app_url or service.app_url)
    return await service.send(EmailMessage(to=to, subject=subject, html=html), EmailCategory.WELCOME_GENERAL)


async def send_expert_application_email(service: EmailService, to: str, full_name: str) -> SendResult:
    subject, html = expert_application_pending(full_name)
    return await service.send(
        EmailMessage(to=to, subject=subject, html=html), EmailCategory.EXPERT_APPLICATION_PENDING
    )


async def send_admin_notification_email(
    service: EmailService,
    to: str,
    full_name: str,
    user_email: str,
    user_id: str,
    app_url: str | None = None,
) -> SendResult:
    subject, html = admin_notification(full_name, user_email, user_id, app_url or service.app_url)
    return await service.send(EmailMessage(to=to, subject=subject, html=html), EmailCategory.ADMIN_NOTIFICATION)
