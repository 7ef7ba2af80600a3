"""Identity provider: accounts, password sign-in and JWT session tokens.

Accounts are stored in the ``users`` collection and keyed by a generated
uid.  A companion ``userEmails`` document per lower-cased email is created
in the same batch as the account, which makes duplicate registration fail
atomically instead of relying on a query-then-write check.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from email_validator import EmailNotValidError, validate_email
from jose import JWTError, jwt
from passlib.context import CryptContext

from payroll_portal.config import Settings
from payroll_portal.constants import USER_EMAILS, USERS
from payroll_portal.errors import AuthenticationError, NotFoundError, ValidationError
from payroll_portal.store import DocumentExistsError, DocumentStore

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


class IdentityError(ValidationError):
    """Raised when an identity cannot be created or changed."""


class InvalidTokenError(AuthenticationError):
    """Raised for malformed, expired or revoked session tokens."""


class InvalidCredentialsError(AuthenticationError):
    """Raised when sign-in fails."""


@dataclass(frozen=True)
class IdentityUser:
    uid: str
    email: str
    display_name: str


@dataclass(frozen=True)
class TokenClaims:
    uid: str
    email: str
    auth_time: float


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str | None) -> bool:
    if not hashed:
        return False
    return pwd_context.verify(plain, hashed)


def _normalize_email(email: str) -> str:
    try:
        return validate_email(email, check_deliverability=False).normalized.lower()
    except EmailNotValidError as e:
        raise IdentityError(f"Invalid email address: {email}") from e


class IdentityProvider:
    """Creates accounts, signs users in and verifies/revokes their tokens."""

    def __init__(self, store: DocumentStore, settings: Settings):
        self.store = store
        self.settings = settings

    async def create_user(
        self,
        email: str,
        password: str,
        display_name: str,
        role: str | None = None,
    ) -> IdentityUser:
        """Create an account. Raises IdentityError on bad input or duplicate email."""
        normalized = _normalize_email(email)
        if not password or len(password) < MIN_PASSWORD_LENGTH:
            raise IdentityError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
            )

        user_ref = self.store.ref(USERS)
        record: dict[str, Any] = {
            "uid": user_ref.id,
            "email": normalized,
            "displayName": display_name,
            "role": role,
            "passwordHash": hash_password(password),
            "createdAt": datetime.now(timezone.utc).isoformat(),
            "tokensValidAfter": 0,
        }

        batch = self.store.batch()
        batch.create(self.store.ref(USER_EMAILS, normalized), {"uid": user_ref.id})
        batch.create(user_ref, record)
        try:
            await batch.commit()
        except DocumentExistsError as e:
            raise IdentityError(f"The email address {normalized} is already in use") from e

        logger.info("Identity created | UID: %s | role: %s", user_ref.id, role)
        return IdentityUser(uid=user_ref.id, email=normalized, display_name=display_name)

    async def get_user(self, uid: str) -> dict[str, Any]:
        snap = await self.store.get(USERS, uid)
        if not snap.exists:
            raise NotFoundError(f"User {uid} not found")
        return snap.to_dict() or {}

    async def find_uid_by_email(self, email: str) -> str | None:
        try:
            normalized = _normalize_email(email)
        except IdentityError:
            return None
        snap = await self.store.get(USER_EMAILS, normalized)
        return snap.get("uid") if snap.exists else None

    async def update_user(
        self,
        uid: str,
        *,
        password: str | None = None,
        login_enable: bool | None = None,
        acc_locked: bool | None = None,
    ) -> dict[str, Any]:
        """Merge account changes into the identity record."""
        changes: dict[str, Any] = {}
        if password is not None:
            if len(password) < MIN_PASSWORD_LENGTH:
                raise IdentityError(
                    f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
                )
            changes["passwordHash"] = hash_password(password)
        if login_enable is not None:
            changes["loginEnable"] = login_enable
        if acc_locked is not None:
            changes["accLocked"] = acc_locked
        if changes:
            await self.store.set(self.store.ref(USERS, uid), changes, merge=True)
        return changes

    async def sign_in(self, email: str, password: str) -> str:
        """Check credentials and issue a session token."""
        uid = await self.find_uid_by_email(email)
        user = (await self.store.get(USERS, uid)).to_dict() if uid else None
        if not user or not verify_password(password, user.get("passwordHash")):
            raise InvalidCredentialsError("Invalid email or password")
        if user.get("loginEnable") is False:
            raise InvalidCredentialsError("Login is disabled for this account")
        if user.get("accLocked") is True:
            raise InvalidCredentialsError("Account is locked")
        return self.issue_token(user["uid"], user["email"])

    def issue_token(self, uid: str, email: str) -> str:
        now = time.time()
        claims = {
            "sub": uid,
            "email": email,
            "auth_time": now,
            "iat": int(now),
            "exp": int(now) + 60 * self.settings.access_token_expire_minutes,
        }
        return jwt.encode(claims, self.settings.jwt_secret, algorithm=self.settings.jwt_alg)

    async def verify_token(self, token: str) -> TokenClaims:
        try:
            payload = jwt.decode(
                token,
                self.settings.jwt_secret,
                algorithms=[self.settings.jwt_alg],
            )
        except JWTError as e:
            raise InvalidTokenError("Invalid or expired token") from e

        uid = payload.get("sub")
        if not uid:
            raise InvalidTokenError("Invalid or expired token")
        snap = await self.store.get(USERS, uid)
        if not snap.exists:
            raise InvalidTokenError("Invalid or expired token")

        auth_time = float(payload.get("auth_time", 0))
        if auth_time <= float(snap.get("tokensValidAfter", 0) or 0):
            raise InvalidTokenError("Token has been revoked")
        return TokenClaims(uid=uid, email=payload.get("email", ""), auth_time=auth_time)

    async def revoke_sessions(self, uid: str) -> None:
        """Invalidate every token issued so far for ``uid``."""
        await self.store.update(self.store.ref(USERS, uid), {"tokensValidAfter": time.time()})
        logger.info("Sessions revoked | UID: %s", uid)
