"""Token endpoint request/response schemas.

Field names on the wire are camelCase (loginToken, userAgent, isNew);
Python attributes are snake_case. Requests accept either spelling.
"""

import uuid
from typing import Any

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from magiclink.core.config import MAX_CODE_LENGTH, MAX_TOKEN_LENGTH

_MAX_TOKEN_LEN = MAX_TOKEN_LENGTH
_MAX_CODE_LEN = MAX_CODE_LENGTH
_MAX_EMAIL_LEN = 255
_MAX_URL_LEN = 2048
_MAX_USER_AGENT_LEN = 1024


class ExchangeRequest(BaseModel):
    """Request body for POST /oauth/token.

    Either a token (``loginToken`` wins over ``token``) or both ``email``
    and ``code`` must be present; the endpoint checks that.
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    token: str | None = Field(default=None, max_length=_MAX_TOKEN_LEN)
    login_token: str | None = Field(
        default=None, alias="loginToken", max_length=_MAX_TOKEN_LEN
    )
    email: str | None = Field(default=None, max_length=_MAX_EMAIL_LEN)
    code: str | None = Field(default=None, max_length=_MAX_CODE_LEN)
    user_agent: str | None = Field(
        default=None, alias="userAgent", max_length=_MAX_USER_AGENT_LEN
    )
    client_ip: str | None = Field(default=None, alias="clientIp", max_length=45)
    attribution: dict[str, Any] | None = None

    @property
    def token_value(self) -> str | None:
        """The token to redeem, preferring loginToken."""
        return self.login_token or self.token


class ExchangeUser(BaseModel):
    """User payload returned by a successful exchange."""

    model_config = ConfigDict(populate_by_name=True)

    id: uuid.UUID
    email: str
    username: str
    name: str | None
    provider: str
    confirmed: bool
    blocked: bool
    role: str
    is_new: bool = Field(alias="isNew")


class ExchangeResponse(BaseModel):
    """Response body for POST /oauth/token."""

    jwt: str
    user: ExchangeUser


class SendMailRequest(BaseModel):
    """Request body for POST /send-mail."""

    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    url: str | None = Field(default=None, max_length=_MAX_URL_LEN)
    context: dict[str, Any] = Field(default_factory=dict)


class SendMailResponse(BaseModel):
    """Response body for POST /send-mail."""

    success: bool
