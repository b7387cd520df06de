"""Passwordless sign-in endpoints.

Endpoints:
- POST /oauth/token: redeem a magic link token or an email + code pair,
  provision the user, return a session JWT
- POST /send-mail: issue a credential pair and email it

Both endpoints are unauthenticated and rate limited per client IP.
"""

import logging
from datetime import timedelta

from fastapi import APIRouter, Request

from magiclink.api.deps import AppSettings, TokenServiceDep, UserProvisionerDep
from magiclink.core.auth import create_jwt
from magiclink.core.config import settings
from magiclink.core.errors import APIError, UnauthorizedError, ValidationError
from magiclink.core.rate_limiting import limiter
from magiclink.schemas.auth import (
    ExchangeRequest,
    ExchangeResponse,
    ExchangeUser,
    SendMailRequest,
    SendMailResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()

_MISSING_CREDENTIALS_MSG = "Either login token or email + code must be provided."
# Security: one message for unknown, expired and already-used credentials.
_INVALID_CREDENTIALS_MSG = "Invalid or expired login credentials."


def _client_ip(request: Request) -> str | None:
    return request.client.host if request.client else None


# ===================================================================
# POST /oauth/token
# ===================================================================


@router.post("/oauth/token")
@limiter.limit(lambda: settings.rate_limit_exchange)
async def exchange_token(
    request: Request,
    body: ExchangeRequest,
    tokens: TokenServiceDep,
    provisioner: UserProvisionerDep,
    app_settings: AppSettings,
) -> ExchangeResponse:
    """Exchange a sign-in credential for a session.

    A token (loginToken preferred over token) takes precedence over an
    email + code pair. The credential is spent even if provisioning then
    refuses the user.

    Rate limit: RATE_LIMIT_EXCHANGE per IP.
    """
    token_value = body.token_value
    if not token_value and not (body.email and body.code):
        raise ValidationError(_MISSING_CREDENTIALS_MSG)

    if token_value:
        record = await tokens.consume_token(token_value)
    else:
        record = await tokens.consume_email_code(body.email, body.code)

    if record is None:
        raise UnauthorizedError(_INVALID_CREDENTIALS_MSG)

    provisioned = await provisioner.provision(
        record.email,
        user_agent=body.user_agent or request.headers.get("user-agent"),
        client_ip=body.client_ip or _client_ip(request),
        attribution=body.attribution,
    )
    user = provisioned.user

    jwt_token = create_jwt(
        user_id=str(user.id),
        secret=app_settings.auth_secret.get_secret_value(),
        issuer=app_settings.auth_issuer,
        audience=app_settings.auth_audience,
        expires_delta=timedelta(minutes=app_settings.jwt_expiry_minutes),
    )

    return ExchangeResponse(
        jwt=jwt_token,
        user=ExchangeUser(
            id=user.id,
            email=user.email,
            username=user.username,
            name=user.name,
            provider=user.provider,
            confirmed=user.confirmed,
            blocked=user.blocked,
            role=user.role,
            is_new=provisioned.is_new,
        ),
    )


# ===================================================================
# POST /send-mail
# ===================================================================


@router.post("/send-mail")
@limiter.limit(lambda: settings.rate_limit_send_mail)
async def send_mail(
    request: Request,
    body: SendMailRequest,
    tokens: TokenServiceDep,
) -> SendMailResponse:
    """Issue a sign-in credential and email it.

    The response never carries the token, code or link.

    Rate limit: RATE_LIMIT_SEND_MAIL per IP.
    """
    try:
        await tokens.send_magic_link_email(
            body.email,
            url=body.url,
            context=body.context,
            ip_address=_client_ip(request),
            user_agent=request.headers.get("user-agent"),
        )
    except APIError as exc:
        logger.error("Failed to send magic link email: %s", exc.code)
        raise

    return SendMailResponse(success=True)
