"""
Email templates for Perfo Points.

Inline CSS only (mail clients strip <style> blocks). Every template returns
``(subject, html_body, text_body)``; user-supplied text is HTML-escaped.
"""

from __future__ import annotations

from html import escape

APP_NAME = "Perfo Points"

BG_PAGE = "#F5F7FB"
BG_CARD = "#FFFFFF"
ACCENT = "#7C3AED"
TEXT_PRIMARY = "#111827"
TEXT_SECONDARY = "#4B5563"
BORDER = "#E5E7EB"

_P = f"color: {TEXT_SECONDARY}; font-size: 16px; line-height: 1.6; margin: 0 0 16px 0;"
_H1 = f"color: {TEXT_PRIMARY}; font-size: 22px; font-weight: 700; margin: 0 0 16px 0;"


def _base_layout(content: str) -> str:
    return f"""\
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{APP_NAME}</title>
</head>
<body style="margin: 0; padding: 0; background-color: {BG_PAGE}; font-family: -apple-system, 'Segoe UI', Roboto, sans-serif;">
    <table role="presentation" cellspacing="0" cellpadding="0" border="0" width="100%">
        <tr>
            <td align="center" style="padding: 32px 16px;">
                <table role="presentation" cellspacing="0" cellpadding="0" border="0" width="560" style="max-width: 560px; width: 100%;">
                    <tr>
                        <td align="center" style="padding-bottom: 24px; font-size: 22px; font-weight: 700; color: {ACCENT};">
                            &#x2B50; {APP_NAME}
                        </td>
                    </tr>
                    <tr>
                        <td style="background-color: {BG_CARD}; border: 1px solid {BORDER}; border-radius: 12px; padding: 32px;">
                            {content}
                        </td>
                    </tr>
                    <tr>
                        <td align="center" style="padding-top: 24px; color: {TEXT_SECONDARY}; font-size: 12px;">
                            Sent by {APP_NAME}. If you didn't expect this email, you can ignore it.
                        </td>
                    </tr>
                </table>
            </td>
        </tr>
    </table>
</body>
</html>"""


def _button(url: str, label: str) -> str:
    return f"""\
<table role="presentation" cellspacing="0" cellpadding="0" border="0" style="margin: 24px auto;">
    <tr>
        <td align="center" style="background-color: {ACCENT}; border-radius: 8px;">
            <a href="{escape(url)}" target="_blank" style="display: inline-block; padding: 12px 28px; color: #FFFFFF; font-size: 15px; font-weight: 600; text-decoration: none;">{label}</a>
        </td>
    </tr>
</table>"""


def _fallback_link(url: str) -> str:
    return (
        f'<p style="color: {TEXT_SECONDARY}; font-size: 12px; margin: 16px 0 0 0;">'
        f"If the button doesn't work, paste this URL into your browser:<br>"
        f'<a href="{escape(url)}" style="color: {ACCENT}; word-break: break-all;">{escape(url)}</a></p>'
    )


def welcome_email(username: str | None, verify_url: str, expires_hours: int = 24) -> tuple[str, str, str]:
    """Sent right after registration; doubles as the first verification mail."""
    name = escape(username or "there")
    subject = f"Welcome to {APP_NAME}!"
    content = f"""\
<h1 style="{_H1}">Welcome aboard!</h1>
<p style="{_P}">Hi {name}, your account is ready. Complete tasks, earn points and keys, and trade them for rewards.</p>
<p style="{_P}">Please confirm your email address first:</p>
{_button(verify_url, "Verify Email")}
<p style="{_P}">This link expires in {expires_hours} hours.</p>
{_fallback_link(verify_url)}"""
    text_body = (
        f"Hi {username or 'there'},\n\n"
        f"Welcome to {APP_NAME}! Confirm your email address here:\n\n{verify_url}\n\n"
        f"This link expires in {expires_hours} hours.\n"
    )
    return subject, _base_layout(content), text_body


def verify_email(verify_url: str, expires_hours: int = 24) -> tuple[str, str, str]:
    subject = f"Verify your {APP_NAME} email"
    content = f"""\
<h1 style="{_H1}">Confirm your email</h1>
<p style="{_P}">Click below to verify your email address.</p>
{_button(verify_url, "Verify Email")}
<p style="{_P}">This link expires in {expires_hours} hours.</p>
{_fallback_link(verify_url)}"""
    text_body = f"Verify your email address:\n\n{verify_url}\n\nThis link expires in {expires_hours} hours.\n"
    return subject, _base_layout(content), text_body


def password_reset(reset_url: str, expires_minutes: int = 60) -> tuple[str, str, str]:
    subject = f"Reset your {APP_NAME} password"
    content = f"""\
<h1 style="{_H1}">Password reset</h1>
<p style="{_P}">Someone (hopefully you) asked to reset your password.</p>
{_button(reset_url, "Choose a New Password")}
<p style="{_P}">The link expires in {expires_minutes} minutes. If you didn't ask for this, nothing changes.</p>
{_fallback_link(reset_url)}"""
    text_body = (
        f"Reset your password here:\n\n{reset_url}\n\n"
        f"The link expires in {expires_minutes} minutes. If you didn't ask for this, ignore this email.\n"
    )
    return subject, _base_layout(content), text_body


def password_changed(username: str | None) -> tuple[str, str, str]:
    name = escape(username or "there")
    subject = f"Your {APP_NAME} password was changed"
    content = f"""\
<h1 style="{_H1}">Password changed</h1>
<p style="{_P}">Hi {name}, your password was just changed and all other sessions were signed out.</p>
<p style="{_P}">If this wasn't you, reset your password immediately and tell a family admin.</p>"""
    text_body = (
        f"Hi {username or 'there'},\n\nYour password was just changed and other sessions were signed out.\n"
        "If this wasn't you, reset your password immediately.\n"
    )
    return subject, _base_layout(content), text_body


def request_reviewed(
    username: str | None, request_title: str, status: str, points: int = 0
) -> tuple[str, str, str]:
    """Tells a user an admin approved or rejected one of their requests."""
    name = escape(username or "there")
    title = escape(request_title)
    subject = f"Your request \"{request_title}\" was {status}"
    earned = f" You earned <strong>{points}</strong> points." if status == "approved" and points else ""
    content = f"""\
<h1 style="{_H1}">Request {escape(status)}</h1>
<p style="{_P}">Hi {name}, your request <strong>{title}</strong> was {escape(status)}.{earned}</p>"""
    text_earned = f" You earned {points} points." if status == "approved" and points else ""
    text_body = f"Hi {username or 'there'},\n\nYour request \"{request_title}\" was {status}.{text_earned}\n"
    return subject, _base_layout(content), text_body


def notification(subject: str, message: str) -> tuple[str, str, str]:
    """Free-form notification; line breaks in ``message`` are preserved."""
    paragraphs = "".join(f'<p style="{_P}">{escape(line)}</p>' for line in message.splitlines() if line.strip())
    content = f'<h1 style="{_H1}">{escape(subject)}</h1>\n{paragraphs}'
    return subject, _base_layout(content), f"{message}\n\n-- {APP_NAME}\n"
