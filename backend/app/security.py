from __future__ import annotations
import hashlib
import hmac
from typing import Optional

from .config import Settings


def hash_password(password: str) -> str:
    return hashlib.sha256(password.encode("utf-8")).hexdigest()


def verify_password(password: Optional[str], password_hash: Optional[str]) -> bool:
    if not password_hash:
        return True
    return hmac.compare_digest(hash_password(password or ""), password_hash)


def is_admin(header_value: Optional[str], settings: Settings) -> bool:
    if not header_value:
        return False
    return hmac.compare_digest(header_value.encode("utf-8"), settings.admin_password.encode("utf-8"))


def can_modify(password_hash: Optional[str], supplied: Optional[str], admin: bool) -> bool:
    """Admin, an unlocked resource, or the right password header."""
    if admin or not password_hash:
        return True
    if not supplied:
        return False
    return verify_password(supplied, password_hash)
