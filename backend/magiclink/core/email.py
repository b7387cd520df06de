"""Outbound email capability.

Sign-in emails go out through the Resend HTTP API (httpx) or, in
development, a console sender that logs only the recipient. Senders never
raise for delivery problems: they return an EmailSendResult, and the caller
decides what a failure means.

Security: subjects and bodies may carry plaintext credentials. Nothing in
this module logs either of them.
"""

import logging
from dataclasses import dataclass
from typing import Protocol

import httpx

from magiclink.core.config import Settings, settings

logger = logging.getLogger(__name__)

_RESEND_API_URL = "https://api.resend.com/emails"


@dataclass(frozen=True)
class EmailMessage:
    """A rendered email ready for dispatch.

    Attributes:
        to: Recipient address.
        subject: Rendered subject line.
        from_address: Sender override; provider default when None.
        reply_to: Reply-To override; omitted when None.
        text: Plain-text body; omitted when None.
        html: HTML body; omitted when None.
    """

    to: str
    subject: str
    from_address: str | None = None
    reply_to: str | None = None
    text: str | None = None
    html: str | None = None


@dataclass(frozen=True)
class EmailSendResult:
    """Outcome of a send attempt.

    Attributes:
        success: True when the provider accepted the message.
        message_id: Provider message id, when one was returned.
        error: Short failure description, when success is False.
    """

    success: bool
    message_id: str | None = None
    error: str | None = None


class EmailSender(Protocol):
    """Email-sending capability consumed by the delivery orchestrator."""

    async def send(self, message: EmailMessage) -> EmailSendResult: ...


class ResendEmailSender:
    """Send email through the Resend HTTP API.

    Args:
        api_key: Resend API key.
        default_from: Sender used when the message carries none.
        timeout: Request timeout in seconds.
        transport: Optional httpx transport (tests inject a MockTransport).
    """

    def __init__(
        self,
        *,
        api_key: str,
        default_from: str,
        timeout: float,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._default_from = default_from
        self._timeout = timeout
        self._transport = transport

    def _payload(self, message: EmailMessage) -> dict:
        payload: dict = {
            "from": message.from_address or self._default_from,
            "to": message.to,
            "subject": message.subject,
        }
        if message.reply_to:
            payload["reply_to"] = message.reply_to
        if message.text is not None:
            payload["text"] = message.text
        if message.html is not None:
            payload["html"] = message.html
        return payload

    async def send(self, message: EmailMessage) -> EmailSendResult:
        """POST the message to Resend.

        Returns:
            EmailSendResult; transport errors and non-2xx answers are
            reported as failures, not raised.
        """
        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                resp = await client.post(
                    _RESEND_API_URL,
                    headers={"Authorization": f"Bearer {self._api_key}"},
                    json=self._payload(message),
                    timeout=self._timeout,
                )
                resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.warning(
                "Resend rejected email: status=%s", exc.response.status_code
            )
            return EmailSendResult(
                success=False,
                error=f"Email provider returned HTTP {exc.response.status_code}",
            )
        except httpx.HTTPError as exc:
            logger.warning("Resend request failed: %s", type(exc).__name__)
            return EmailSendResult(
                success=False,
                error=f"Email provider unreachable ({type(exc).__name__})",
            )

        try:
            message_id = resp.json().get("id")
        except ValueError:
            message_id = None
        return EmailSendResult(success=True, message_id=message_id)


class ConsoleEmailSender:
    """Development sender: logs the recipient, drops everything else."""

    async def send(self, message: EmailMessage) -> EmailSendResult:
        logger.info("Sending email (console backend) -> %s", message.to)
        return EmailSendResult(success=True)


def get_email_sender(app_settings: Settings = settings) -> EmailSender | None:
    """Build the configured email sender.

    Returns:
        A sender, or None when email is disabled or the resend backend has
        no API key. The orchestrator turns None into EmailNotConfiguredError.
    """
    if app_settings.email_backend == "console":
        return ConsoleEmailSender()

    if app_settings.email_backend == "resend":
        api_key = app_settings.resend_api_key.get_secret_value()
        if not api_key:
            logger.warning("EMAIL_BACKEND=resend but RESEND_API_KEY is empty")
            return None
        return ResendEmailSender(
            api_key=api_key,
            default_from=app_settings.email_from,
            timeout=app_settings.email_timeout_seconds,
        )

    return None
