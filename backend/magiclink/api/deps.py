"""Shared dependencies for API endpoints.

Services are built per request from the database session and the
deployment settings. Tests swap them out with app.dependency_overrides.
"""

import secrets
from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from magiclink.core.config import Settings, settings
from magiclink.core.database import get_db
from magiclink.core.email import EmailSender, get_email_sender
from magiclink.core.errors import AdminRequiredError
from magiclink.repositories.login_token_repository import SqlAlchemyTokenStore
from magiclink.services.settings_service import SettingsService
from magiclink.services.token_service import TokenService
from magiclink.services.user_provisioning import UserProvisioner

_bearer = HTTPBearer(auto_error=False)


def get_settings() -> Settings:
    """Deployment settings (overridable in tests)."""
    return settings


DbSession = Annotated[AsyncSession, Depends(get_db)]
AppSettings = Annotated[Settings, Depends(get_settings)]


def get_settings_service(db: DbSession, app_settings: AppSettings) -> SettingsService:
    """Database-backed settings resolver for this request."""
    return SettingsService(db, app_settings)


def get_mail_sender(app_settings: AppSettings) -> EmailSender | None:
    """Configured email sender, or None when email is unavailable."""
    return get_email_sender(app_settings)


def get_token_service(
    db: DbSession,
    settings_service: Annotated[SettingsService, Depends(get_settings_service)],
    email_sender: Annotated[EmailSender | None, Depends(get_mail_sender)],
) -> TokenService:
    """Token service wired to the SQLAlchemy store."""
    return TokenService(
        store=SqlAlchemyTokenStore(db),
        settings_resolver=settings_service,
        email_sender=email_sender,
    )


def get_user_provisioner(db: DbSession, app_settings: AppSettings) -> UserProvisioner:
    """User provisioning collaborator for this request."""
    return UserProvisioner(db, app_settings)


def require_admin(
    app_settings: AppSettings,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(_bearer)],
) -> None:
    """Require the admin API key as a bearer token.

    Security: constant-time comparison. An unset ADMIN_API_KEY disables
    the admin endpoints entirely.

    Raises:
        AdminRequiredError: If the key is missing, wrong, or not configured.
    """
    expected = app_settings.admin_api_key.get_secret_value()
    if not expected or credentials is None:
        raise AdminRequiredError()
    if not secrets.compare_digest(
        credentials.credentials.encode(), expected.encode()
    ):
        raise AdminRequiredError()


# Reusable type aliases for dependency injection
SettingsServiceDep = Annotated[SettingsService, Depends(get_settings_service)]
TokenServiceDep = Annotated[TokenService, Depends(get_token_service)]
UserProvisionerDep = Annotated[UserProvisioner, Depends(get_user_provisioner)]
AdminAccess = Annotated[None, Depends(require_admin)]
