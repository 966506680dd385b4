# freightflow_auth/store.py
"""Credential store.

Persistence only: every method opens its own short-lived session, performs a
single query or statement and closes it. Business rules live in
``freightflow_auth.service``.
"""
import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterator, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .database import Database
from .exceptions import DuplicateKeyError, StoreUnavailableError
from .models import User

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = frozenset(
    {"name", "phone", "password_hash", "role", "reset_token", "reset_token_expires"}
)
TOKEN_FIELDS = ("reset_token", "reset_token_expires")


class CredentialStore:
    """User records backed by a SQLAlchemy ``Database``."""

    def __init__(self, database: Database):
        self.database = database

    @contextmanager
    def _session(self) -> Iterator[Session]:
        try:
            db = self.database.session()
        except RuntimeError as e:
            raise StoreUnavailableError(str(e)) from e
        try:
            yield db
        except IntegrityError:
            db.rollback()
            raise
        except SQLAlchemyError as e:
            db.rollback()
            logger.error("Credential store error: %s", e)
            raise StoreUnavailableError("Credential store unavailable") from e
        finally:
            db.close()

    def find_by_email(self, email: str) -> Optional[User]:
        with self._session() as db:
            return db.query(User).filter(User.email == email).first()

    def find_by_id(self, user_id: str) -> Optional[User]:
        with self._session() as db:
            return db.get(User, user_id)

    def find_by_valid_token(self, token: str, now: datetime) -> Optional[User]:
        """Return the user holding ``token`` if it expires strictly after ``now``."""
        if not token:
            return None
        with self._session() as db:
            return (
                db.query(User)
                .filter(User.reset_token == token, User.reset_token_expires > now)
                .first()
            )

    def insert(self, user: User) -> str:
        """Persist a new user and return its id.

        Raises:
            DuplicateKeyError: If a user with the same email already exists.
        """
        try:
            with self._session() as db:
                db.add(user)
                db.commit()
                return user.id
        except IntegrityError as e:
            raise DuplicateKeyError(user.email) from e

    def update_fields(
        self,
        fields: Dict[str, Any],
        *,
        user_id: Optional[str] = None,
        email: Optional[str] = None,
        if_token: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> bool:
        """Apply ``fields`` to one user in a single UPDATE statement.

        The row is selected by ``user_id`` or ``email``. When ``if_token`` is
        given the update only matches while that token is still stored and
        unexpired at ``now``, so two callers racing on one token cannot both
        succeed.

        Returns:
            True if a row was updated.
        """
        if (user_id is None) == (email is None):
            raise ValueError("update_fields needs exactly one of user_id or email")
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields cannot be updated: {sorted(unknown)}")
        touched = [name for name in TOKEN_FIELDS if name in fields]
        if touched and len(touched) != len(TOKEN_FIELDS):
            raise ValueError("reset_token and reset_token_expires must be updated together")
        if (fields.get("reset_token") is None) != (fields.get("reset_token_expires") is None):
            raise ValueError("reset_token and reset_token_expires must both be set or both cleared")

        stmt = update(User)
        if user_id is not None:
            stmt = stmt.where(User.id == user_id)
        else:
            stmt = stmt.where(User.email == email)
        if if_token is not None:
            if now is None:
                raise ValueError("now is required with if_token")
            stmt = stmt.where(
                User.reset_token == if_token, User.reset_token_expires > now
            )
        stmt = stmt.values(**fields).execution_options(synchronize_session=False)

        with self._session() as db:
            result = db.execute(stmt)
            db.commit()
            return result.rowcount == 1
