"""User accounts: registration, password login and profiles."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import insert, or_, select, update

from kocmoc.core.errors import (
    AuthFailure,
    ConflictError,
    DeliveryError,
    ForbiddenError,
    InvalidArgumentError,
    NotFoundError,
    UnauthenticatedError,
)
from kocmoc.core.security import hash_password, verify_password
from kocmoc.db.store import Store
from kocmoc.db.time import as_utc, utcnow
from kocmoc.models import AuthSession, Role, User

from .sessions import Identity, SessionManager
from .verification import Redemption, VerificationService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UserProfile:
    """Public view of an account; the password hash is never part of it."""

    id: str
    email: str
    display_name: str
    avatar_url: str | None
    role: str
    online: bool
    last_seen: datetime | None
    created_at: datetime


@dataclass(frozen=True)
class Registration:
    """Newly created account and whether its verification email went out."""

    user: UserProfile
    code_sent: bool


@dataclass(frozen=True)
class LoginResult:
    """Bearer token for a fresh session plus the signed-in account."""

    token: str
    user: UserProfile


_PROFILE_COLUMNS = (
    User.id,
    User.email,
    User.display_name,
    User.avatar_url,
    User.role,
    User.online,
    User.last_seen,
    User.created_at,
)


def _to_profile(row) -> UserProfile:
    return UserProfile(
        id=row.id,
        email=row.email,
        display_name=row.display_name,
        avatar_url=row.avatar_url,
        role=row.role,
        online=row.online,
        last_seen=as_utc(row.last_seen) if row.last_seen else None,
        created_at=as_utc(row.created_at),
    )


def _normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


class AccountService:
    """Creates accounts and resolves credentials into sessions."""

    def __init__(
        self,
        store: Store,
        sessions: SessionManager,
        verification: VerificationService,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.store = store
        self.sessions = sessions
        self.verification = verification
        self._clock = clock

    def _create_user(self, email: str, password: str, display_name: str, avatar_url: str | None, role: Role) -> str:
        try:
            result = self.store.execute(
                insert(User).values(
                    email=email,
                    password_hash=hash_password(password),
                    display_name=display_name,
                    avatar_url=avatar_url or None,
                    role=role.value,
                    online=False,
                    created_at=self._clock(),
                )
            )
        except ConflictError as err:
            raise ConflictError("User with this email already exists") from err
        return result.inserted_id

    def register(
        self,
        email: str,
        password: str,
        display_name: str,
        avatar_url: str | None = None,
    ) -> Registration:
        """Create an account and email it a verification code.

        A delivery failure does not undo the registration; it is reported
        through ``code_sent``.
        """
        email = _normalize_email(email)
        display_name = (display_name or "").strip()
        if not email or not password or not display_name:
            raise InvalidArgumentError("email, password and display_name are required")

        user_id = self._create_user(email, password, display_name, avatar_url, Role.USER)
        logger.info("Registered user %s", user_id)

        code_sent = True
        try:
            self.verification.request(email, user_id)
        except DeliveryError:
            logger.warning("Verification email for new user %s was not delivered", user_id)
            code_sent = False

        return Registration(user=self.get_user(user_id), code_sent=code_sent)

    def send_code(self, email: str) -> None:
        """Issue a fresh verification code to an existing account."""
        email = _normalize_email(email)
        if not email:
            raise InvalidArgumentError("email is required")
        row = self.store.query_one(select(User.id).where(User.email == email))
        if row is None:
            raise NotFoundError("User not found")
        self.verification.request(email, row.id)

    def verify_code(self, email: str, code: str) -> Redemption:
        """Redeem a verification code for a session token."""
        email = _normalize_email(email)
        if not email or not code:
            raise InvalidArgumentError("email and code are required")
        return self.verification.redeem(email, code)

    def login(self, email: str, password: str) -> LoginResult:
        """Check credentials, open a session and mark the user online."""
        email = _normalize_email(email)
        if not email or not password:
            raise InvalidArgumentError("email and password are required")

        with self.store.transaction() as tx:
            row = tx.query_one(select(User.id, User.password_hash).where(User.email == email))
            if row is None or not verify_password(password, row.password_hash):
                logger.info("Failed login for %s", email)
                raise UnauthenticatedError("Invalid email or password", AuthFailure.INVALID_CREDENTIALS)
            token = self.sessions.issue(row.id, tx)
            tx.execute(
                update(User).where(User.id == row.id).values(online=True, last_seen=self._clock())
            )
            profile = tx.query_one(select(*_PROFILE_COLUMNS).where(User.id == row.id))

        return LoginResult(token=token, user=_to_profile(profile))

    def logout(self, token: str) -> None:
        """Revoke the session behind ``token`` and mark its owner offline.

        Unknown, expired and already revoked tokens are accepted silently.
        """
        with self.store.transaction() as tx:
            row = tx.query_one(select(AuthSession.user_id).where(AuthSession.token == token))
            if row is None:
                return
            self.sessions.revoke(token, tx)
            tx.execute(
                update(User).where(User.id == row.user_id).values(online=False, last_seen=self._clock())
            )

    def logout_everywhere(self, identity: Identity) -> int:
        """Revoke every session of the caller and return how many were removed."""
        with self.store.transaction() as tx:
            removed = self.sessions.revoke_all(identity.user_id, tx)
            tx.execute(
                update(User)
                .where(User.id == identity.user_id)
                .values(online=False, last_seen=self._clock())
            )
        return removed

    def get_user(self, user_id: str) -> UserProfile:
        row = self.store.query_one(select(*_PROFILE_COLUMNS).where(User.id == user_id))
        if row is None:
            raise NotFoundError("User not found")
        return _to_profile(row)

    def list_users(self, exclude_user_id: str | None = None) -> list[UserProfile]:
        """Return every account except ``exclude_user_id``, by display name."""
        statement = select(*_PROFILE_COLUMNS).order_by(User.display_name.asc(), User.id.asc())
        if exclude_user_id is not None:
            statement = statement.where(User.id != exclude_user_id)
        return [_to_profile(row) for row in self.store.query_many(statement)]

    def search_users(self, query: str, exclude_user_id: str | None = None) -> list[UserProfile]:
        """Case-insensitive substring match on display name or email."""
        query = (query or "").strip()
        if not query:
            raise InvalidArgumentError("Search query is required")
        escaped = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        pattern = f"%{escaped}%"
        statement = (
            select(*_PROFILE_COLUMNS)
            .where(
                or_(
                    User.display_name.ilike(pattern, escape="\\"),
                    User.email.ilike(pattern, escape="\\"),
                )
            )
            .order_by(User.display_name.asc(), User.id.asc())
        )
        if exclude_user_id is not None:
            statement = statement.where(User.id != exclude_user_id)
        return [_to_profile(row) for row in self.store.query_many(statement)]

    def update_profile(
        self,
        identity: Identity,
        target_user_id: str,
        *,
        display_name: str | None = None,
        avatar_url: str | None = None,
    ) -> UserProfile:
        """Change display name and/or avatar; admins may edit anyone."""
        if identity.user_id != target_user_id and not identity.is_admin:
            raise ForbiddenError("You can only update your own profile")

        values: dict[str, str | None] = {}
        if display_name is not None:
            if not display_name.strip():
                raise InvalidArgumentError("display_name cannot be empty")
            values["display_name"] = display_name.strip()
        if avatar_url is not None:
            values["avatar_url"] = avatar_url or None
        if not values:
            raise InvalidArgumentError("No fields to update")

        result = self.store.execute(update(User).where(User.id == target_user_id).values(**values))
        if result.rows_affected == 0:
            raise NotFoundError("User not found")
        return self.get_user(target_user_id)

    def ensure_admin(self, email: str | None, password: str | None) -> str | None:
        """Create the bootstrap admin account if configured and missing.

        Returns the admin's id, or None when no admin is configured.
        """
        email = _normalize_email(email)
        if not email or not password:
            logger.info("ADMIN_EMAIL/ADMIN_PASSWORD not set; skipping admin bootstrap")
            return None

        row = self.store.query_one(select(User.id, User.role).where(User.email == email))
        if row is not None:
            if row.role != Role.ADMIN.value:
                logger.warning("Configured admin %s exists without the admin role", email)
            return row.id

        try:
            user_id = self._create_user(email, password, "Admin", None, Role.ADMIN)
        except ConflictError:
            # Another worker bootstrapped the same account concurrently.
            existing = self.store.query_one(select(User.id).where(User.email == email))
            if existing is None:
                raise
            return existing.id
        logger.info("Created admin account %s", email)
        return user_id
