"""User provisioning after a credential has been redeemed.

The token lifecycle proves control of an email address; this module turns
that email into a user account. Existing users are confirmed, unknown
emails are registered when auto-registration is on.
"""

import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from magiclink.core.config import Settings
from magiclink.core.errors import ForbiddenError, ValidationError
from magiclink.models.user import User
from magiclink.repositories.user_repository import UserRepository

logger = logging.getLogger(__name__)

MAGICLINK_PROVIDER = "magiclink"

_BLOCKED_MSG = "Your account has been blocked by an administrator"
_UNKNOWN_USER_MSG = "No account exists for this email address"


@dataclass(frozen=True)
class ProvisionedUser:
    """A user ready for session issuance.

    Attributes:
        user: The persisted user.
        is_new: True if this sign-in created the account.
    """

    user: User
    is_new: bool


class UserProvisioner:
    """Find or register the user behind a validated email.

    Args:
        db: Async database session.
        app_settings: Provides AUTO_REGISTER_USERS and DEFAULT_USER_ROLE.
    """

    def __init__(self, db: AsyncSession, app_settings: Settings) -> None:
        self._db = db
        self._app_settings = app_settings

    async def provision(
        self,
        email: str,
        *,
        user_agent: str | None = None,
        client_ip: str | None = None,
        attribution: dict[str, Any] | None = None,
    ) -> ProvisionedUser:
        """Return the user for an email, registering one if allowed.

        Args:
            email: Email from the redeemed token record.
            user_agent: Client User-Agent, recorded on registration.
            client_ip: Client IP, recorded on registration.
            attribution: Referral metadata, recorded on registration.

        Returns:
            ProvisionedUser.

        Raises:
            ForbiddenError: If the account is blocked.
            ValidationError: If the account does not exist and
                auto-registration is disabled.
        """
        normalized = email.strip().lower()
        existing = await UserRepository.get_by_email(self._db, normalized)

        if existing is not None:
            self._refuse_blocked(existing)
            if not existing.confirmed:
                updated = await UserRepository.update(
                    self._db, existing.id, confirmed=True
                )
                if updated is not None:
                    existing = updated
            return ProvisionedUser(user=existing, is_new=False)

        if not self._app_settings.auto_register_users:
            raise ValidationError(_UNKNOWN_USER_MSG)

        try:
            user = await UserRepository.create(
                self._db,
                email=normalized,
                username=normalized,
                name=normalized.split("@", 1)[0],
                provider=MAGICLINK_PROVIDER,
                role=self._app_settings.default_user_role,
                confirmed=True,
                user_agent=user_agent,
                client_ip=client_ip,
                attribution=attribution,
            )
        except IntegrityError:
            # A concurrent first sign-in registered the same email.
            await self._db.rollback()
            winner = await UserRepository.get_by_email(self._db, normalized)
            if winner is None:
                raise
            self._refuse_blocked(winner)
            return ProvisionedUser(user=winner, is_new=False)
        logger.info("Registered user id=%s via magic link", user.id)
        return ProvisionedUser(user=user, is_new=True)

    @staticmethod
    def _refuse_blocked(user: User) -> None:
        if user.blocked:
            logger.info("Sign-in refused for blocked user id=%s", user.id)
            raise ForbiddenError(_BLOCKED_MSG)
