"""
Email templates for the learning checklist.

All templates use inline CSS for email client compatibility.
Each template function returns (subject, html_body, text_body).
"""

from __future__ import annotations

from html import escape

APP_NAME = "DSA Learning Checklist"

# Color constants
BG_DARK = "#0F172A"
BG_CARD = "#1E293B"
BG_SURFACE = "#334155"
GREEN = "#22C55E"
TEXT_PRIMARY = "#E2E8F0"
TEXT_SECONDARY = "#CBD5E1"
TEXT_MUTED = "#64748B"


def _base_layout(content: str) -> str:
    """Wrap content in the base email layout."""
    return f"""\
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{APP_NAME}</title>
</head>
<body style="margin: 0; padding: 0; background-color: {BG_DARK}; font-family: 'Segoe UI', Tahoma, Geneva, Verdana, sans-serif;">
    <table role="presentation" cellspacing="0" cellpadding="0" border="0" width="100%" style="background-color: {BG_DARK};">
        <tr>
            <td align="center" style="padding: 40px 20px;">
                <table role="presentation" cellspacing="0" cellpadding="0" border="0" width="600" style="max-width: 600px; width: 100%; background-color: {BG_CARD}; border: 2px solid {GREEN}; border-radius: 8px;">
                    <tr>
                        <td style="padding: 40px;">
                            {content}
                        </td>
                    </tr>
                    <tr>
                        <td align="center" style="padding: 0 40px 32px 40px; border-top: 1px solid {BG_SURFACE};">
                            <p style="color: {TEXT_MUTED}; font-size: 12px; line-height: 1.5; margin: 20px 0 0 0;">
                                This is an automated email from {APP_NAME}. Please do not reply to this email.
                            </p>
                        </td>
                    </tr>
                </table>
            </td>
        </tr>
    </table>
</body>
</html>"""


def _heading(text: str) -> str:
    return (
        f'<h1 style="color: {GREEN}; font-size: 28px; margin: 0 0 30px 0; text-align: center;'
        f" font-family: 'Courier New', monospace;\">&gt; {text}</h1>"
    )


def _paragraph(text: str) -> str:
    return f'<p style="color: {TEXT_SECONDARY}; font-size: 16px; line-height: 1.6; margin: 0 0 16px 0;">{text}</p>'


def _code(text: str) -> str:
    return (
        f'<span style="background-color: {BG_SURFACE}; padding: 2px 6px; border-radius: 4px;'
        f" font-family: 'Courier New', monospace; color: {GREEN};\">{escape(text)}</span>"
    )


def verification_code(username: str, code: str, expires_minutes: int = 10) -> tuple[str, str, str]:
    """
    One-time code sent at signup and on resend.

    Returns:
        (subject, html_body, text_body)
    """
    subject = f"Your verification code - {APP_NAME}"
    content = f"""\
{_heading("Verify Your Email")}
{_paragraph(f"Hello {_code(username)},")}
{_paragraph("Enter this code to verify your email address:")}
<p style="text-align: center; margin: 28px 0;">
    <span style="display: inline-block; background-color: {BG_SURFACE}; color: {GREEN}; font-size: 32px; letter-spacing: 8px; padding: 14px 28px; border-radius: 6px; font-family: 'Courier New', monospace; font-weight: bold;">{escape(code)}</span>
</p>
{_paragraph(f"<strong>This code will expire in {expires_minutes} minutes.</strong>")}
{_paragraph("If you didn't create an account, you can safely ignore this email.")}"""
    text_body = (
        f"Hello {username},\n\n"
        f"Your verification code is: {code}\n\n"
        f"This code will expire in {expires_minutes} minutes.\n\n"
        f"If you didn't create an account, you can safely ignore this email.\n\n"
        f"---\nThis is an automated email from {APP_NAME}."
    )
    return subject, _base_layout(content), text_body


def password_reset(username: str, reset_url: str, expires_minutes: int = 60) -> tuple[str, str, str]:
    """
    Password reset link.

    Returns:
        (subject, html_body, text_body)
    """
    subject = f"Password Reset Request - {APP_NAME}"
    expires = "1 hour" if expires_minutes == 60 else f"{expires_minutes} minutes"
    safe_url = escape(reset_url, quote=True)
    content = f"""\
{_heading("Password Reset")}
{_paragraph(f"Hello {_code(username)},")}
{_paragraph(f"We received a request to reset your password for your {APP_NAME} account.")}
{_paragraph("Click the button below to reset your password:")}
<p style="text-align: center; margin: 20px 0;">
    <a href="{safe_url}" target="_blank" style="display: inline-block; background-color: {GREEN}; color: {BG_DARK}; padding: 14px 32px; text-decoration: none; border-radius: 6px; font-weight: bold; font-family: 'Courier New', monospace;">Reset Password</a>
</p>
{_paragraph("Or copy and paste this link into your browser:")}
<p style="word-break: break-all; background-color: {BG_SURFACE}; color: {TEXT_PRIMARY}; padding: 10px; border-radius: 4px; font-family: 'Courier New', monospace; font-size: 12px;">{safe_url}</p>
{_paragraph(f"<strong>This link will expire in {expires}.</strong>")}
{_paragraph("If you didn't request a password reset, you can safely ignore this email. Your password will remain unchanged.")}"""
    text_body = (
        f"Hello {username},\n\n"
        f"We received a request to reset your password for your {APP_NAME} account.\n\n"
        f"Click the link below to reset your password:\n{reset_url}\n\n"
        f"This link will expire in {expires}.\n\n"
        f"If you didn't request a password reset, you can safely ignore this email. "
        f"Your password will remain unchanged.\n\n"
        f"---\nThis is an automated email from {APP_NAME}."
    )
    return subject, _base_layout(content), text_body
