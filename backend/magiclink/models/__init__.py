"""SQLAlchemy ORM models.

All models are exported from this module for convenient imports:
    from magiclink.models import LoginToken, User, ...

Models:
- login_token.py: LoginToken (issued magic link tokens and one-time codes)
- email_template_settings.py: EmailTemplateSetting (admin template layer)
- user.py: User (provisioned identities)
"""

from magiclink.models.base import Base, TimestampMixin
from magiclink.models.email_template_settings import (
    EMAIL_SETTINGS_KEY,
    EmailTemplateSetting,
)
from magiclink.models.login_token import LoginToken
from magiclink.models.user import User

__all__ = [
    # Base classes
    "Base",
    "TimestampMixin",
    # Token lifecycle
    "LoginToken",
    # Settings
    "EMAIL_SETTINGS_KEY",
    "EmailTemplateSetting",
    # Identity
    "User",
]
