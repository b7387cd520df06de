"""Settings resolver for email templates and token lifecycle parameters.

Email template settings are merged field by field from three layers:

    built-in defaults  <  deployment configuration  <  persisted settings row

A non-empty string in a higher layer wins; None or "" falls through to the
layer beneath. Token parameters come from the built-in defaults and the
deployment configuration only, with numeric fallbacks for values that are
unset, non-numeric, not positive or outside the credential length
bounds.

Nothing is cached: every call reads the current state.
"""

import logging
import math
from collections.abc import Callable, Mapping
from dataclasses import asdict, dataclass
from typing import Any, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from magiclink.core.config import (
    MAX_CODE_LENGTH,
    MAX_TOKEN_LENGTH,
    MIN_CODE_LENGTH,
    MIN_TOKEN_LENGTH,
    Settings,
)
from magiclink.models.email_template_settings import EmailTemplateSetting
from magiclink.repositories.settings_repository import (
    EmailTemplateSettingsRepository,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Types and built-in defaults
# =============================================================================


@dataclass(frozen=True)
class EmailTemplateSettings:
    """Effective email template settings.

    Attributes:
        default_from: From address ("" lets the transport decide).
        default_reply_to: Reply-To address ("" omits the header).
        subject: Subject template.
        text: Plain-text body template.
        html: HTML body template.
    """

    default_from: str = ""
    default_reply_to: str = ""
    subject: str = ""
    text: str = ""
    html: str = ""


@dataclass(frozen=True)
class TokenConfig:
    """Effective token lifecycle parameters.

    Attributes:
        ttl_minutes: Lifetime of a credential pair, in minutes.
        token_length: Magic link token length in characters.
        code_length: One-time code length in digits.
    """

    ttl_minutes: float
    token_length: int
    code_length: int


DEFAULT_EMAIL_SUBJECT = "Your sign-in link"

_DEFAULT_EMAIL_TEXT = "\n".join(
    [
        "Hello,",
        "",
        "Use the magic link below to finish signing in:",
        "{{MAGIC_LINK}}",
        "",
        "Or enter the one-time code:",
        "{{CODE}}",
        "",
        "If you did not request this email, you can safely ignore it.",
    ]
)

_DEFAULT_EMAIL_HTML = """
  <p>Hello,</p>
  <p>
    Use the magic link below to finish signing in:<br />
    <a href="{{MAGIC_LINK}}">{{MAGIC_LINK}}</a>
  </p>
  <p>
    Or enter the one-time code: <strong>{{CODE}}</strong>
  </p>
  <p>If you did not request this email, you can safely ignore it.</p>
"""

DEFAULT_EMAIL_SETTINGS = EmailTemplateSettings(
    subject=DEFAULT_EMAIL_SUBJECT,
    text=_DEFAULT_EMAIL_TEXT,
    html=_DEFAULT_EMAIL_HTML,
)

DEFAULT_TOKEN_CONFIG = TokenConfig(ttl_minutes=15, token_length=32, code_length=6)

_EMAIL_FIELDS: tuple[str, ...] = (
    "default_from",
    "default_reply_to",
    "subject",
    "text",
    "html",
)


# =============================================================================
# Pure resolution
# =============================================================================


def sanitize_string(value: Any) -> str:
    """Return value when it is a string, "" otherwise."""
    return value if isinstance(value, str) else ""


def _layer_value(
    layer: EmailTemplateSettings | Mapping[str, Any] | None, name: str
) -> Any:
    if layer is None:
        return None
    if isinstance(layer, Mapping):
        return layer.get(name)
    return getattr(layer, name, None)


def resolve_email_settings(
    defaults: EmailTemplateSettings,
    deployment: EmailTemplateSettings | Mapping[str, Any] | None,
    stored: EmailTemplateSettings | Mapping[str, Any] | None,
) -> EmailTemplateSettings:
    """Merge the three email template layers field by field.

    Args:
        defaults: Built-in defaults (lowest precedence).
        deployment: Deployment configuration layer.
        stored: Persisted settings layer (highest precedence).

    Returns:
        Effective settings. Each field comes from the highest layer that
        holds a non-empty string for it.
    """
    merged: dict[str, str] = {}
    for name in _EMAIL_FIELDS:
        value = sanitize_string(getattr(defaults, name))
        for layer in (deployment, stored):
            candidate = sanitize_string(_layer_value(layer, name))
            if candidate:
                value = candidate
        merged[name] = value
    return EmailTemplateSettings(**merged)


def _positive_number(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number) or number <= 0:
        return None
    return number


def _positive_int(value: Any) -> int | None:
    number = _positive_number(value)
    if number is None or not number.is_integer():
        return None
    return int(number)


def _int_within(low: int, high: int) -> Callable[[Any], int | None]:
    def parse(value: Any) -> int | None:
        number = _positive_int(value)
        if number is None or not low <= number <= high:
            return None
        return number

    return parse


def resolve_token_config(
    defaults: TokenConfig,
    deployment: Mapping[str, Any] | None,
) -> TokenConfig:
    """Resolve token parameters from the defaults and deployment layers.

    A value that is unset, non-numeric or not positive is ignored, as is a
    length outside 16..255 (token) or 4..16 (code). When neither layer
    holds a usable value, 15 minutes / 32 / 6 apply.
    """
    deployment = deployment or {}

    def _pick(name: str, parse: Any, fallback: float) -> Any:
        for candidate in (deployment.get(name), getattr(defaults, name)):
            parsed = parse(candidate)
            if parsed is not None:
                return parsed
        return fallback

    ttl = _pick("ttl_minutes", _positive_number, DEFAULT_TOKEN_CONFIG.ttl_minutes)
    if isinstance(ttl, float) and ttl.is_integer():
        ttl = int(ttl)
    return TokenConfig(
        ttl_minutes=ttl,
        token_length=_pick(
            "token_length",
            _int_within(MIN_TOKEN_LENGTH, MAX_TOKEN_LENGTH),
            DEFAULT_TOKEN_CONFIG.token_length,
        ),
        code_length=_pick(
            "code_length",
            _int_within(MIN_CODE_LENGTH, MAX_CODE_LENGTH),
            DEFAULT_TOKEN_CONFIG.code_length,
        ),
    )


# =============================================================================
# Resolver contract and database-backed implementation
# =============================================================================


class SettingsResolver(Protocol):
    """Source of effective settings consumed by the token service."""

    async def get_email_settings(self) -> EmailTemplateSettings: ...

    async def get_token_config(self) -> TokenConfig: ...


def _row_to_layer(row: EmailTemplateSetting | None) -> EmailTemplateSettings | None:
    if row is None:
        return None
    return EmailTemplateSettings(
        default_from=row.default_from,
        default_reply_to=row.default_reply_to,
        subject=row.subject,
        text=row.text_body,
        html=row.html_body,
    )


class SettingsService:
    """Database-backed settings resolver plus the admin read/write operations.

    Args:
        db: Async database session.
        app_settings: Deployment configuration.
    """

    def __init__(self, db: AsyncSession, app_settings: Settings) -> None:
        self._db = db
        self._app_settings = app_settings

    def _deployment_email_layer(self) -> EmailTemplateSettings:
        cfg = self._app_settings
        return EmailTemplateSettings(
            default_from=cfg.email_default_from,
            default_reply_to=cfg.email_default_reply_to,
            subject=cfg.email_subject,
            text=cfg.email_text,
            html=cfg.email_html,
        )

    async def get_email_settings(self) -> EmailTemplateSettings:
        """Return the effective email template settings."""
        row = await EmailTemplateSettingsRepository.get(self._db)
        return resolve_email_settings(
            DEFAULT_EMAIL_SETTINGS,
            self._deployment_email_layer(),
            _row_to_layer(row),
        )

    async def get_token_config(self) -> TokenConfig:
        """Return the effective token lifecycle parameters."""
        cfg = self._app_settings
        return resolve_token_config(
            DEFAULT_TOKEN_CONFIG,
            {
                "ttl_minutes": cfg.token_ttl_minutes,
                "token_length": cfg.token_length,
                "code_length": cfg.code_length,
            },
        )

    async def get_settings(self) -> EmailTemplateSettings:
        """Admin read: the effective email template settings."""
        return await self.get_email_settings()

    async def update_settings(
        self, payload: Mapping[str, Any]
    ) -> EmailTemplateSettings:
        """Admin write: persist all five template fields verbatim.

        Non-string values are stored as "". Fields missing from the payload
        are stored as "" too, which re-exposes the lower layers.

        Args:
            payload: Values keyed by EmailTemplateSettings field name.

        Returns:
            Exactly what was stored (not the merged view).
        """
        stored = EmailTemplateSettings(
            **{name: sanitize_string(payload.get(name)) for name in _EMAIL_FIELDS}
        )
        await EmailTemplateSettingsRepository.upsert(
            self._db,
            default_from=stored.default_from,
            default_reply_to=stored.default_reply_to,
            subject=stored.subject,
            text_body=stored.text,
            html_body=stored.html,
        )
        logger.info(
            "Email template settings updated (fields set: %s)",
            sorted(name for name, value in asdict(stored).items() if value),
        )
        return stored
