# freightflow_auth/service.py
"""Auth service: registration, login and the password reset flow.

Reset state per user is carried by the ``reset_token`` /
``reset_token_expires`` pair:

    no pending reset --forgot_password--> pending reset
    pending reset    --forgot_password--> pending reset (new token, old one dead)
    pending reset    --reset_password-->  no pending reset

Expected outcomes come back as an ``AuthResult``; only infrastructure faults
(``StoreUnavailableError``) are raised.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .exceptions import AuthError, DuplicateKeyError
from .models import User
from .notifier import RESET_SUBJECT, NotificationSender, build_reset_link
from .security import Clock, PasswordHasher, ResetTokenIssuer, utcnow
from .store import CredentialStore

logger = logging.getLogger(__name__)

INVALID_TOKEN_MESSAGE = "Invalid or expired token"


@dataclass
class AuthResult:
    ok: bool
    message: str
    error: Optional[AuthError] = None
    data: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def success(cls, message: str, **data: Any) -> "AuthResult":
        return cls(ok=True, message=message, data=data)

    @classmethod
    def failure(cls, error: AuthError, message: str) -> "AuthResult":
        return cls(ok=False, message=message, error=error)


class AuthService:
    def __init__(
        self,
        store: CredentialStore,
        hasher: PasswordHasher,
        issuer: ResetTokenIssuer,
        sender: NotificationSender,
        reset_link_base_url: str,
        clock: Clock = utcnow,
    ):
        self.store = store
        self.hasher = hasher
        self.issuer = issuer
        self.sender = sender
        self.reset_link_base_url = reset_link_base_url
        self.clock = clock

    def register(
        self,
        name: Optional[str],
        email: Optional[str],
        phone: Optional[str],
        password: Optional[str],
        role: Optional[str],
    ) -> AuthResult:
        if not name or not email or not password:
            return AuthResult.failure(AuthError.MISSING_FIELDS, "Missing fields")

        if self.store.find_by_email(email) is not None:
            return AuthResult.failure(AuthError.USER_EXISTS, "User already exists")

        user = User(
            name=name,
            email=email,
            phone=phone,
            password_hash=self.hasher.hash(password),
            role=role,
            created_at=self.clock(),
        )
        try:
            user_id = self.store.insert(user)
        except DuplicateKeyError:
            # Lost a race with a concurrent registration for the same email
            return AuthResult.failure(AuthError.USER_EXISTS, "User already exists")

        logger.info("Created user %s", user_id)
        return AuthResult.success("User created")

    def login(self, email: Optional[str], password: Optional[str]) -> AuthResult:
        user = self.store.find_by_email(email) if email else None
        if user is None:
            return AuthResult.failure(AuthError.USER_NOT_FOUND, "User not found")

        if not self.hasher.verify(password, user.password_hash):
            return AuthResult.failure(AuthError.INVALID_PASSWORD, "Invalid password")

        return AuthResult.success("Login successful", user=user.public_view())

    def forgot_password(self, email: Optional[str]) -> AuthResult:
        """Issue a reset token for ``email`` and send the reset link.

        Any token issued earlier for the same user is overwritten, so calling
        this twice leaves only the newest link usable.
        """
        user = self.store.find_by_email(email) if email else None
        if user is None:
            return AuthResult.failure(
                AuthError.USER_NOT_FOUND, "No account with this email"
            )

        token, expires_at = self.issuer.issue()
        self.store.update_fields(
            {"reset_token": token, "reset_token_expires": expires_at},
            user_id=user.id,
        )
        logger.info("Issued reset token for user %s, expires %s", user.id, expires_at)

        link = build_reset_link(self.reset_link_base_url, token)
        if not self.sender.send(user.email, RESET_SUBJECT, link):
            logger.error("Could not deliver reset link to user %s", user.id)
            return AuthResult.failure(
                AuthError.NOTIFICATION_FAILURE, "Could not send reset email"
            )

        return AuthResult.success("Reset link sent to email")

    def verify_token(self, token: Optional[str]) -> AuthResult:
        if self.store.find_by_valid_token(token, self.clock()) is None:
            return AuthResult.failure(
                AuthError.INVALID_OR_EXPIRED_TOKEN, INVALID_TOKEN_MESSAGE
            )
        return AuthResult.success("Token valid")

    def reset_password(
        self, token: Optional[str], new_password: Optional[str]
    ) -> AuthResult:
        user = self.store.find_by_valid_token(token, self.clock())
        if user is None:
            return AuthResult.failure(
                AuthError.INVALID_OR_EXPIRED_TOKEN, INVALID_TOKEN_MESSAGE
            )
        if not new_password:
            return AuthResult.failure(AuthError.MISSING_FIELDS, "Missing fields")

        hashed = self.hasher.hash(new_password)
        # Re-check the token inside the UPDATE: only one concurrent reset wins
        updated = self.store.update_fields(
            {
                "password_hash": hashed,
                "reset_token": None,
                "reset_token_expires": None,
            },
            user_id=user.id,
            if_token=token,
            now=self.clock(),
        )
        if not updated:
            return AuthResult.failure(
                AuthError.INVALID_OR_EXPIRED_TOKEN, INVALID_TOKEN_MESSAGE
            )

        logger.info("Password reset for user %s", user.id)
        return AuthResult.success("Password reset successfully")
