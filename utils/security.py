import secrets
import string
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

import jwt
from werkzeug.security import check_password_hash, generate_password_hash

_TEMP_PASSWORD_ALPHABET = string.ascii_letters + string.digits + "!@#$%^&*"


def hash_password(password: str) -> str:
    # Werkzeug 3 defaults to scrypt; pin explicitly for stability.
    return generate_password_hash(password, method="scrypt", salt_length=16)


def verify_password(password: str, password_hash: str) -> bool:
    if not password or not password_hash:
        return False
    return check_password_hash(password_hash, password)


def generate_temporary_password(length: int = 12) -> str:
    """Random one-time password for auto-provisioned accounts."""
    if length < 2:
        raise ValueError("Temporary passwords need at least 2 characters")
    while True:
        candidate = "".join(secrets.choice(_TEMP_PASSWORD_ALPHABET) for _ in range(length))
        # Require at least one letter and one digit
        if any(c.isalpha() for c in candidate) and any(c.isdigit() for c in candidate):
            return candidate


def generate_otp() -> str:
    return f"{secrets.randbelow(900000) + 100000}"


def create_access_token(user_id: str, role: str, secret_key: str, algorithm: str = "HS256", expires_hours: int = 24) -> str:
    payload = {
        "sub": user_id,
        "role": role,
        "exp": datetime.now(timezone.utc) + timedelta(hours=expires_hours),
    }
    return jwt.encode(payload, secret_key, algorithm=algorithm)


def decode_access_token(token: str, secret_key: str, algorithm: str = "HS256") -> Dict[str, Any]:
    return jwt.decode(token, secret_key, algorithms=[algorithm])
