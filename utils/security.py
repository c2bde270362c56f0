from __future__ import annotations

from typing import Optional
from werkzeug.security import generate_password_hash, check_password_hash


def hash_password(plain: str, method: str = "pbkdf2:sha256", salt_length: int = 16) -> str:
    plain = (plain or "").strip()
    return generate_password_hash(plain, method=method, salt_length=salt_length)


def is_hashed(value: Optional[str]) -> bool:
    if not value:
        return False
    # Werkzeug hashes carry a method prefix like 'pbkdf2:sha256:' or 'scrypt:'
    return str(value).startswith(("pbkdf2:", "scrypt:"))


def verify_password(stored_hash: Optional[str], candidate: str) -> bool:
    """Check ``candidate`` against a Werkzeug hash. Unhashed values never match."""
    if not is_hashed(stored_hash):
        return False
    return check_password_hash(stored_hash, candidate or "")
