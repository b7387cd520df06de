"""Token lifecycle: issuance, single-use redemption and email delivery.

Issuance generates a unique token and a per-email unique code, stores them
with an expiry, and optionally deactivates the email's earlier credentials
first. Redemption finds an active record by token or by (email, code) and
deactivates it with a conditional update, so a credential succeeds at most
once however many callers race for it. Delivery issues a credential pair
and sends it through the configured email sender.

Security: plaintext tokens, codes, magic links and rendered email bodies
are never logged. Log lines carry record ids and outcomes only.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any, TypeAlias

from magiclink.core.email import EmailMessage, EmailSender
from magiclink.core.errors import (
    EmailDeliveryError,
    EmailNotConfiguredError,
    TokenGenerationError,
    ValidationError,
)
from magiclink.services.email_template import build_magic_link, render_template
from magiclink.services.secret_generator import generate_code, generate_token
from magiclink.services.settings_service import (
    DEFAULT_EMAIL_SUBJECT,
    SettingsResolver,
)
from magiclink.services.token_store import (
    DuplicateTokenError,
    NewTokenRecord,
    SanitizedTokenRecord,
    TokenRecord,
    TokenStore,
)

logger = logging.getLogger(__name__)

# Upper bound on candidate secrets per uniqueness check, and on create()
# attempts when the store rejects an insert as a duplicate.
MAX_GENERATION_ATTEMPTS = 5

Clock: TypeAlias = Callable[[], datetime]

# The issuer hands back the full record, plaintext secrets included.
IssuedToken: TypeAlias = TokenRecord


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


@dataclass(frozen=True)
class MagicLinkDelivery:
    """Result of a successful send_magic_link_email call.

    Carries plaintext secrets. Only trusted internal callers may see it;
    the HTTP layer never returns it.

    Attributes:
        token: Magic link token.
        code: One-time code.
        magic_link: Link built from the caller's URL, or None without one.
        expires_at: Credential expiry.
        email: Normalized recipient.
    """

    token: str
    code: str
    magic_link: str | None
    expires_at: datetime
    email: str


class TokenService:
    """Issues, redeems and delivers sign-in credentials.

    Args:
        store: Token persistence.
        settings_resolver: Source of token parameters and email templates.
        email_sender: Outbound email capability, or None when unavailable.
        clock: Returns the current aware UTC time.
    """

    def __init__(
        self,
        store: TokenStore,
        settings_resolver: SettingsResolver,
        email_sender: EmailSender | None = None,
        clock: Clock = _utcnow,
    ) -> None:
        self._store = store
        self._settings = settings_resolver
        self._email_sender = email_sender
        self._clock = clock

    # =========================================================================
    # Issuance
    # =========================================================================

    async def _generate_unique(
        self,
        generate: Callable[[], str],
        exists: Callable[[str], Awaitable[bool]],
        what: str,
    ) -> str:
        for _ in range(MAX_GENERATION_ATTEMPTS):
            candidate = generate()
            if not await exists(candidate):
                return candidate
        msg = f"Unable to generate a unique {what}. Please try again."
        raise TokenGenerationError(msg)

    async def create_token(
        self,
        email: str,
        *,
        context: dict[str, Any] | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
        invalidate_existing: bool = True,
    ) -> IssuedToken:
        """Issue a new token and one-time code for an email address.

        Args:
            email: Recipient address; stripped and lowercased.
            context: Caller metadata stored with the record.
            ip_address: Requesting client's IP.
            user_agent: Requesting client's User-Agent.
            invalidate_existing: Deactivate the email's active records first.

        Returns:
            The stored record, including plaintext token and code.

        Raises:
            ValidationError: If email is empty.
            TokenGenerationError: If no unique token/code pair could be
                stored within MAX_GENERATION_ATTEMPTS.
        """
        normalized = _normalize_email(email)
        if not normalized:
            raise ValidationError("Email is required")

        if invalidate_existing:
            invalidated = await self._store.deactivate_active_for_email(normalized)
            if invalidated:
                logger.info("Invalidated %d active login token(s)", invalidated)

        config = await self._settings.get_token_config()

        for attempt in range(1, MAX_GENERATION_ATTEMPTS + 1):
            token = await self._generate_unique(
                lambda: generate_token(config.token_length),
                self._store.token_exists,
                "login token",
            )
            code = await self._generate_unique(
                lambda: generate_code(config.code_length),
                lambda candidate: self._store.active_code_exists(
                    normalized, candidate
                ),
                "verification code",
            )
            expires_at = self._clock() + timedelta(minutes=config.ttl_minutes)

            try:
                record = await self._store.create(
                    NewTokenRecord(
                        email=normalized,
                        token=token,
                        code=code,
                        expires_at=expires_at,
                        context=dict(context or {}),
                        ip_address=ip_address,
                        user_agent=user_agent,
                    )
                )
            except DuplicateTokenError:
                logger.warning(
                    "Login token insert collided (attempt %d/%d)",
                    attempt,
                    MAX_GENERATION_ATTEMPTS,
                )
                continue

            logger.info("Issued login token id=%s", record.id)
            return record

        raise TokenGenerationError(
            "Unable to store a unique login token. Please try again."
        )

    # =========================================================================
    # Redemption
    # =========================================================================

    async def _redeem(self, record: TokenRecord | None) -> SanitizedTokenRecord | None:
        if record is None:
            return None

        now = self._clock()
        if record.expires_at <= now:
            await self._store.deactivate(record.id)
            logger.info("Login token expired id=%s", record.id)
            return None

        if not await self._store.mark_used(record.id, now):
            logger.info("Login token already redeemed id=%s", record.id)
            return None

        logger.info("Login token redeemed id=%s", record.id)
        return record.consumed(now).sanitized()

    async def consume_token(self, token: str | None) -> SanitizedTokenRecord | None:
        """Redeem a magic link token.

        Returns:
            The sanitized, now inactive record, or None if the token is
            unknown, inactive, expired or was redeemed concurrently.
        """
        if not token:
            return None
        return await self._redeem(await self._store.find_active_by_token(token))

    async def consume_email_code(
        self, email: str | None, code: str | None
    ) -> SanitizedTokenRecord | None:
        """Redeem a one-time code for an email address.

        The newest active record matching (email, code) is the candidate.

        Returns:
            The sanitized, now inactive record, or None on any miss.
        """
        normalized = _normalize_email(email)
        if not normalized or not code:
            return None
        return await self._redeem(
            await self._store.find_active_by_code(normalized, code)
        )

    # =========================================================================
    # Delivery
    # =========================================================================

    async def send_magic_link_email(
        self,
        email: str,
        *,
        url: str | None = None,
        context: dict[str, Any] | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
        invalidate_existing: bool = True,
    ) -> MagicLinkDelivery:
        """Issue a credential pair and email it.

        The issued record stays active if sending fails.

        Args:
            email: Recipient address.
            url: Base URL for the magic link. No link is built without it.
            context: Caller metadata stored with the record.
            ip_address: Requesting client's IP.
            user_agent: Requesting client's User-Agent.
            invalidate_existing: Deactivate the email's active records first.

        Returns:
            MagicLinkDelivery with the plaintext secrets.

        Raises:
            ValidationError: If email is empty.
            TokenGenerationError: If issuance gave up.
            EmailNotConfiguredError: If no email sender is configured.
            EmailDeliveryError: If the sender reported a failure.
        """
        issued = await self.create_token(
            email,
            context=context,
            ip_address=ip_address,
            user_agent=user_agent,
            invalidate_existing=invalidate_existing,
        )

        if self._email_sender is None:
            logger.error("Cannot send sign-in email: no email sender configured")
            raise EmailNotConfiguredError()

        templates = await self._settings.get_email_settings()
        magic_link = build_magic_link(url, issued.token)
        variables = {
            "TOKEN": issued.token,
            "CODE": issued.code,
            "EMAIL": issued.email,
            "EXPIRES_AT": issued.expires_at.isoformat(),
            "URL": url or "",
            "MAGIC_LINK": magic_link or "",
        }

        message = EmailMessage(
            to=issued.email,
            subject=render_template(templates.subject, variables)
            or DEFAULT_EMAIL_SUBJECT,
            from_address=templates.default_from or None,
            reply_to=templates.default_reply_to or None,
            text=render_template(templates.text, variables),
            html=render_template(templates.html, variables),
        )

        result = await self._email_sender.send(message)
        if not result.success:
            logger.error(
                "Sign-in email delivery failed for token id=%s: %s",
                issued.id,
                result.error,
            )
            raise EmailDeliveryError()

        logger.info(
            "Sign-in email sent for token id=%s (message_id=%s)",
            issued.id,
            result.message_id,
        )
        return MagicLinkDelivery(
            token=issued.token,
            code=issued.code,
            magic_link=magic_link,
            expires_at=issued.expires_at,
            email=issued.email,
        )

