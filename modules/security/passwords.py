from __future__ import annotations
from typing import Optional

# werkzeug PBKDF2 is the standard hash; bcrypt is kept for accounts imported with older hashes
import bcrypt
from werkzeug.security import generate_password_hash, check_password_hash


def is_bcrypt_hash(h: Optional[str]) -> bool:
    return isinstance(h, str) and h.startswith(("$2a$", "$2b$", "$2y$"))


def hash_password(password: str) -> str:
    """
    Create the system-standard hash (werkzeug PBKDF2-SHA256).
    """
    return generate_password_hash(password or "", method="pbkdf2:sha256", salt_length=16)


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    """
    Check a password:
    - bcrypt hashes ($2a$/$2b$/$2y$) are checked with bcrypt
    - everything else with werkzeug PBKDF2
    """
    if not password_hash:
        return False

    if is_bcrypt_hash(password_hash):
        try:
            return bcrypt.checkpw((password or "").encode("utf-8"), password_hash.encode("utf-8"))
        except ValueError:
            return False

    try:
        return check_password_hash(password_hash, password or "")
    except ValueError:
        return False
