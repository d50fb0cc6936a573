"""Bearer-token sessions backed by persisted ``sessions`` rows.

A token is a signed JWT whose subject is the user id. Signature and expiry
checks alone are not enough: the token is valid only while a session row
exists for that exact (token, user) pair, so logout takes effect immediately.
"""

from __future__ import annotations

import logging
import secrets
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from jose import ExpiredSignatureError, JWTError, jwt
from sqlalchemy import delete, insert, select

from kocmoc.core.errors import AuthFailure, UnauthenticatedError
from kocmoc.db.store import Executor, Store
from kocmoc.db.time import utcnow
from kocmoc.models import AuthSession, Role, User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    """Authenticated caller resolved from a bearer token."""

    user_id: str
    email: str
    display_name: str
    role: Role
    token: str | None = None

    @property
    def is_admin(self) -> bool:
        """Return True for accounts holding the admin role."""
        return self.role is Role.ADMIN


class SessionManager:
    """Issues, validates and revokes bearer tokens."""

    def __init__(
        self,
        store: Store,
        *,
        secret_key: str,
        algorithm: str = "HS256",
        ttl_minutes: int = 60 * 24 * 30,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.store = store
        self._secret_key = secret_key
        self._algorithm = algorithm
        self._ttl = timedelta(minutes=ttl_minutes)
        self._clock = clock

    def _encode(self, user_id: str) -> str:
        issued_at = self._clock()
        claims: dict[str, object] = {
            "sub": user_id,
            # Random nonce keeps tokens unique even when issued within the same second.
            "jti": secrets.token_urlsafe(16),
            "iat": issued_at,
            "exp": issued_at + self._ttl,
        }
        token: str = jwt.encode(claims, self._secret_key, algorithm=self._algorithm)
        return token

    def issue(self, user_id: str, executor: Executor | None = None) -> str:
        """Create a new session row for ``user_id`` and return its bearer token.

        Existing sessions are left alone, so one user may stay signed in on
        several devices at once.
        """
        token = self._encode(user_id)
        (executor or self.store).execute(
            insert(AuthSession).values(user_id=user_id, token=token, created_at=self._clock())
        )
        logger.debug("Issued session for user %s", user_id)
        return token

    def validate(self, token: str) -> Identity:
        """Resolve ``token`` to the identity it was issued for.

        Raises:
            UnauthenticatedError: With reason ``expired``, ``malformed``,
                ``unknown`` (user gone) or ``revoked`` (no session row).
        """
        if not token:
            raise UnauthenticatedError("Authentication required", AuthFailure.MISSING)
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[self._algorithm])
        except ExpiredSignatureError as err:
            raise UnauthenticatedError("Token has expired", AuthFailure.EXPIRED) from err
        except JWTError as err:
            raise UnauthenticatedError("Invalid token", AuthFailure.MALFORMED) from err

        user_id = payload.get("sub")
        if not isinstance(user_id, str) or not user_id:
            raise UnauthenticatedError("Invalid token", AuthFailure.MALFORMED)

        with self.store.transaction() as tx:
            user = tx.query_one(
                select(User.id, User.email, User.display_name, User.role).where(User.id == user_id)
            )
            if user is None:
                raise UnauthenticatedError("User not found", AuthFailure.UNKNOWN)
            session = tx.query_one(
                select(AuthSession.id).where(
                    AuthSession.token == token,
                    AuthSession.user_id == user_id,
                )
            )
        if session is None:
            raise UnauthenticatedError("Session is no longer valid", AuthFailure.REVOKED)

        return Identity(
            user_id=user.id,
            email=user.email,
            display_name=user.display_name,
            role=Role(user.role),
            token=token,
        )

    def revoke(self, token: str, executor: Executor | None = None) -> None:
        """Delete the session behind ``token``; revoking an unknown token is a no-op."""
        result = (executor or self.store).execute(delete(AuthSession).where(AuthSession.token == token))
        if result.rows_affected:
            logger.info("Revoked session")

    def revoke_all(self, user_id: str, executor: Executor | None = None) -> int:
        """Delete every session of ``user_id`` and return how many were removed."""
        result = (executor or self.store).execute(
            delete(AuthSession).where(AuthSession.user_id == user_id)
        )
        if result.rows_affected:
            logger.info("Revoked %d sessions for user %s", result.rows_affected, user_id)
        return result.rows_affected
