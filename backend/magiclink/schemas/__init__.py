"""Pydantic request/response schemas for API endpoints."""

from magiclink.schemas.auth import (
    ExchangeRequest,
    ExchangeResponse,
    ExchangeUser,
    SendMailRequest,
    SendMailResponse,
)
from magiclink.schemas.settings import (
    EmailTemplateSettingsResponse,
    EmailTemplateSettingsUpdate,
)

__all__ = [
    # Token endpoints
    "ExchangeRequest",
    "ExchangeResponse",
    "ExchangeUser",
    "SendMailRequest",
    "SendMailResponse",
    # Admin settings
    "EmailTemplateSettingsResponse",
    "EmailTemplateSettingsUpdate",
]
