"""Single-use, time-boxed email verification codes."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import insert, select, update

from kocmoc.core.errors import AlreadyUsedError, ExpiredError, NotFoundError
from kocmoc.core.security import generate_numeric_code
from kocmoc.db.store import Store
from kocmoc.db.time import as_utc, utcnow
from kocmoc.models import User, VerificationCode

from .mailer import Mailer
from .sessions import SessionManager

logger = logging.getLogger(__name__)

EMAIL_SUBJECT = "Kocmoc verification code"


@dataclass(frozen=True)
class Redemption:
    """Result of a successful code redemption: a fresh session plus its owner."""

    token: str
    user_id: str
    email: str
    display_name: str
    avatar_url: str | None


class VerificationService:
    """Issues codes, hands them to the mailer, and redeems them exactly once."""

    def __init__(
        self,
        store: Store,
        mailer: Mailer,
        sessions: SessionManager,
        *,
        ttl_minutes: int = 15,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.store = store
        self.mailer = mailer
        self.sessions = sessions
        self.ttl_minutes = ttl_minutes
        self._clock = clock

    def request(self, email: str, user_id: str | None = None) -> str:
        """Persist a new code for ``email`` and try to deliver it.

        The code is committed before delivery, so a ``DeliveryError`` leaves
        it redeemable.
        """
        code = generate_numeric_code()
        now = self._clock()
        self.store.execute(
            insert(VerificationCode).values(
                email=email,
                code=code,
                user_id=user_id,
                expires_at=now + timedelta(minutes=self.ttl_minutes),
                used=False,
                created_at=now,
            )
        )
        logger.info("Issued verification code for %s", email)

        body = f"Your verification code: {code}. The code is valid for {self.ttl_minutes} minutes."
        self.mailer.send(email, EMAIL_SUBJECT, body)
        return code

    def redeem(self, email: str, code: str) -> Redemption:
        """Consume the most recent matching code and open a session for its user.

        Raises:
            NotFoundError: No row matches, or the code has no live user.
            AlreadyUsedError: The code was redeemed before (including by a
                concurrent caller that won the race).
            ExpiredError: The code's expiry has passed.
        """
        now = self._clock()
        with self.store.transaction() as tx:
            row = tx.query_one(
                select(
                    VerificationCode.id,
                    VerificationCode.user_id,
                    VerificationCode.expires_at,
                    VerificationCode.used,
                )
                .where(VerificationCode.email == email, VerificationCode.code == code)
                .order_by(VerificationCode.created_at.desc(), VerificationCode.id.desc())
                .limit(1)
            )
            if row is None:
                logger.info("Rejected verification for %s: no matching code", email)
                raise NotFoundError("Invalid verification code")
            if row.used:
                logger.info("Rejected verification for %s: code already used", email)
                raise AlreadyUsedError("Verification code has already been used")
            if as_utc(row.expires_at) <= now:
                logger.info("Rejected verification for %s: code expired", email)
                raise ExpiredError("Verification code has expired")

            user = None
            if row.user_id is not None:
                user = tx.query_one(
                    select(User.id, User.email, User.display_name, User.avatar_url).where(
                        User.id == row.user_id
                    )
                )
            if user is None:
                raise NotFoundError("User not found")

            # Conditional flip: only one concurrent redeemer sees a row affected.
            consumed = tx.execute(
                update(VerificationCode)
                .where(VerificationCode.id == row.id, VerificationCode.used.is_(False))
                .values(used=True)
            )
            if consumed.rows_affected != 1:
                raise AlreadyUsedError("Verification code has already been used")

            token = self.sessions.issue(user.id, tx)

        return Redemption(
            token=token,
            user_id=user.id,
            email=user.email,
            display_name=user.display_name,
            avatar_url=user.avatar_url,
        )
