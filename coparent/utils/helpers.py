import secrets
import uuid
from typing import Optional


def generate_id() -> str:
    """Generate a string UUID primary key"""
    return str(uuid.uuid4())


def generate_share_code() -> str:
    """Six digit family share code"""
    return f"{secrets.randbelow(900000) + 100000}"


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


def display_name(full_name: Optional[str], email: Optional[str]) -> str:
    """Name shown to the other parent, falling back to the email local part"""
    if full_name:
        return full_name
    if email:
        return email.split("@")[0]
    return "Parent"
