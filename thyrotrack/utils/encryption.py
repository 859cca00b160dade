import base64
import hashlib
import os
from typing import Any

from cryptography.fernet import Fernet
from sqlalchemy.types import TypeDecorator, Text


def _build_cipher() -> Fernet:
    """Derive a stable Fernet key from ENCRYPTION_SECRET (or fallback dev secret)."""
    secret = os.getenv("ENCRYPTION_SECRET", "dev-secret-key-change-me").encode("utf-8")
    # Fernet wants a urlsafe-base64 encoded 32-byte key
    key = base64.urlsafe_b64encode(hashlib.sha256(secret).digest())
    return Fernet(key)


_CIPHER = _build_cipher()


class EncryptedFloat(TypeDecorator):
    """Stores a float as a Fernet token; lab values are PHI at rest."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value: Any, dialect) -> Any:  # type: ignore[override]
        if value is None:
            return None
        token = _CIPHER.encrypt(repr(float(value)).encode("utf-8"))
        return token.decode("utf-8")

    def process_result_value(self, value: Any, dialect) -> Any:  # type: ignore[override]
        if value is None:
            return None
        # InvalidToken propagates; a wrong ENCRYPTION_SECRET must not read as missing data
        raw = _CIPHER.decrypt(value.encode("utf-8"))
        return float(raw.decode("utf-8"))
