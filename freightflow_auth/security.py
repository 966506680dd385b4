# freightflow_auth/security.py
import secrets
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Tuple

from passlib.context import CryptContext

RESET_TOKEN_BYTES = 32
RESET_TOKEN_EXPIRE_MINUTES = 10

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Naive UTC now, the form every timestamp is stored in."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


# --- Password Hashing ---
class PasswordHasher:
    def __init__(self, rounds: int = 10):
        self.pwd_context = CryptContext(
            schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds
        )

    def hash(self, password: str) -> str:
        return self.pwd_context.hash(password)

    def verify(self, plain_password: Optional[str], hashed_password: Optional[str]) -> bool:
        """Check a password against a stored hash.

        Malformed, unknown or missing hashes are treated as a mismatch.
        """
        if not plain_password or not hashed_password:
            return False
        try:
            return self.pwd_context.verify(plain_password, hashed_password)
        except (ValueError, TypeError):
            return False


# --- Reset Tokens ---
class ResetTokenIssuer:
    """Issues opaque reset tokens; it does not know which user they belong to."""

    def __init__(
        self,
        expire_minutes: int = RESET_TOKEN_EXPIRE_MINUTES,
        clock: Clock = utcnow,
    ):
        self.ttl = timedelta(minutes=expire_minutes)
        self.clock = clock

    def issue(self) -> Tuple[str, datetime]:
        token = secrets.token_hex(RESET_TOKEN_BYTES)
        return token, self.clock() + self.ttl
