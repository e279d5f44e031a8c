"""HTML email templates"""

import html
from typing import Optional


def _layout(title: str, body: str) -> str:
    return f"""
    <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
      <h1 style="color: #4A5568;">{title}</h1>
      {body}
    </div>
    """


def _button(url: str, label: str, color: str = "#4299E1") -> str:
    return (
        f'<div style="margin: 30px 0;"><a href="{html.escape(url, quote=True)}" '
        f'style="background-color: {color}; color: white; padding: 12px 24px; '
        f'text-decoration: none; border-radius: 6px; display: inline-block;">{label}</a></div>'
    )


def family_invite_template(
    inviter_name: str, family_name: Optional[str], share_code: str, signup_url: str
) -> tuple[str, str]:
    """Returns (subject, html) for a co-parent invitation"""
    inviter = html.escape(inviter_name)
    family = f'"{html.escape(family_name)}"' if family_name else "their family"
    body = f"""
      <p><strong>{inviter}</strong> has invited you to join {family} on CoParent.</p>
      <p>CoParent helps you share custody schedules, swap days, and keep track of tasks and documents together.</p>
      {_button(signup_url, "Accept Invitation")}
      <p>Or join with family code <strong style="letter-spacing: 2px;">{share_code}</strong>.</p>
      <p style="color: #718096; font-size: 14px;">
        Sign up with this email address to join the family automatically.
      </p>
    """
    return f"{inviter_name} invited you to join CoParent", _layout("You've been invited!", body)
