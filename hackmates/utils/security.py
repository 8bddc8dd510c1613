import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Tuple

import bcrypt
import jwt


# bcrypt only looks at the first 72 bytes
_BCRYPT_MAX_BYTES = 72


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8")[:_BCRYPT_MAX_BYTES], bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, hashed_password: str) -> bool:
    if not hashed_password:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8")[:_BCRYPT_MAX_BYTES], hashed_password.encode("utf-8"))
    except ValueError:
        return False


def create_access_token(subject: str, secret: str, algorithm: str, expires_minutes: int) -> Tuple[str, Dict[str, Any]]:
    expires_at = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes)
    payload = {"sub": subject, "exp": int(expires_at.timestamp()), "jti": uuid.uuid4().hex}
    return jwt.encode(payload, secret, algorithm=algorithm), payload


def decode_access_token(token: str, secret: str, algorithm: str) -> Dict[str, Any]:
    """Raises jwt.PyJWTError on a bad signature, expired token or missing claims."""
    return jwt.decode(token, secret, algorithms=[algorithm], options={"require": ["sub", "exp", "jti"]})
