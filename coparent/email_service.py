"""
Email Service using Resend
"""

import logging
from typing import Optional, Union

import resend

from .config import EMAIL_FROM_ADDRESS, FRONTEND_URL, RESEND_API_KEY
from .email_templates import family_invite_template

logger = logging.getLogger(__name__)

resend.api_key = RESEND_API_KEY


class EmailNotConfiguredError(RuntimeError):
    pass


async def send_email(
    to: Union[str, list[str]],
    subject: str,
    html_content: str,
    from_address: Optional[str] = None,
) -> dict:
    """
    Send an email through Resend.

    Raises EmailNotConfiguredError when RESEND_API_KEY is missing.
    """
    if not RESEND_API_KEY:
        raise EmailNotConfiguredError("RESEND_API_KEY missing")

    recipients = [to] if isinstance(to, str) else to
    logger.info(f"📧 Sending email via Resend to: {recipients}")
    response = resend.Emails.send(
        {
            "from": from_address or EMAIL_FROM_ADDRESS,
            "to": recipients,
            "subject": subject,
            "html": html_content,
        }
    )
    logger.info(f"✅ Email sent: {subject}")
    return response


async def send_family_invite_email(
    to: str, inviter_name: str, family_name: Optional[str], share_code: str
) -> bool:
    """Invite a co-parent by email. Best-effort: returns False instead of raising."""
    subject, html_content = family_invite_template(
        inviter_name, family_name, share_code, f"{FRONTEND_URL}/signup"
    )
    try:
        await send_email(to=to, subject=subject, html_content=html_content)
        return True
    except EmailNotConfiguredError:
        logger.warning(f"⚠️ Email not configured, skipped family invite to {to}")
    except Exception as e:
        logger.error(f"❌ Failed to send family invite email to {to}: {str(e)}")
    return False
