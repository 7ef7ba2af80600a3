"""Account provisioning, sign-in and sign-out."""

from __future__ import annotations

import logging
from typing import Any

from payroll_portal.constants import USERS, UserRole
from payroll_portal.errors import ConflictError
from payroll_portal.identity import IdentityProvider, IdentityUser
from payroll_portal.store import DOCUMENT_ID, Query

logger = logging.getLogger(__name__)


class AuthService:
    def __init__(self, identity: IdentityProvider):
        self.identity = identity
        self.store = identity.store

    async def create_user_with_role(
        self, email: str, password: str, display_name: str, role: str
    ) -> IdentityUser:
        try:
            user = await self.identity.create_user(email, password, display_name, role=role)
        except Exception as e:
            logger.error("Failed to create user with role %s: %s", role, e)
            raise
        logger.info("User created with role: %s | UID: %s", role, user.uid)
        return user

    async def check_super_admin_exists(self) -> bool:
        rows = await self.store.run(
            Query(USERS)
            .where("role", "==", UserRole.SUPER_ADMIN.value)
            .order_by(DOCUMENT_ID)
            .limit(1)
        )
        exists = bool(rows)
        logger.info("Super Admin exists: %s", exists)
        return exists

    async def signup_super_admin(
        self, email: str, password: str, display_name: str
    ) -> dict[str, Any]:
        if await self.check_super_admin_exists():
            raise ConflictError("Super Admin already exists")
        user = await self.create_user_with_role(
            email, password, display_name, UserRole.SUPER_ADMIN.value
        )
        return {
            "uid": user.uid,
            "email": user.email,
            "displayName": user.display_name,
            "role": UserRole.SUPER_ADMIN.value,
        }

    async def login(self, email: str, password: str) -> dict[str, Any]:
        token = await self.identity.sign_in(email, password)
        claims = await self.identity.verify_token(token)
        user = await self.identity.get_user(claims.uid)
        logger.info("Login successful | UID: %s", claims.uid)
        return {
            "token": token,
            "uid": claims.uid,
            "email": claims.email,
            "displayName": user.get("displayName"),
            "role": user.get("role"),
        }

    async def logout(self, token: str) -> str:
        claims = await self.identity.verify_token(token)
        await self.identity.revoke_sessions(claims.uid)
        logger.info("Logout successful | UID: %s", claims.uid)
        return "Logout successful. Token revoked."
