"""API error classes.

HTTP status codes and machine-readable error codes for every failure the
service surfaces.

Redemption misses are deliberately NOT errors: the token consumer returns
``None`` and only the HTTP layer maps that to UnauthorizedError, so
"expired", "already used" and "never existed" stay indistinguishable.
"""


class APIError(Exception):
    """Base class for API errors.

    All API errors have a code, message, and HTTP status.
    Subclasses set default status_code.

    Attributes:
        code: Machine-readable error code (e.g., "VALIDATION_ERROR").
        message: Human-readable error message.
        status_code: HTTP status code to return.
        details: Optional list of additional error details.
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: list[dict] | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(message)


class ValidationError(APIError):
    """Input validation failed (400).

    Raised before any store access: missing email, missing token and
    email+code pair, unknown user when auto-registration is off.
    """

    def __init__(
        self,
        message: str,
        details: list[dict] | None = None,
    ) -> None:
        super().__init__(
            code="VALIDATION_ERROR",
            message=message,
            status_code=400,
            details=details,
        )


class UnauthorizedError(APIError):
    """Authentication failed (401)."""

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(
            code="UNAUTHORIZED",
            message=message,
            status_code=401,
        )


class ForbiddenError(APIError):
    """Not allowed (403).

    Use when the identity is valid but may not proceed, e.g. a blocked user.
    """

    def __init__(self, message: str = "Access denied") -> None:
        super().__init__(
            code="FORBIDDEN",
            message=message,
            status_code=403,
        )


class AdminRequiredError(ForbiddenError):
    """Admin access required (403).

    Raised by the require_admin dependency when the admin key is missing,
    wrong, or not configured at all.
    """

    def __init__(self) -> None:
        APIError.__init__(
            self,
            code="ADMIN_REQUIRED",
            message="Admin access required",
            status_code=403,
        )


class TokenGenerationError(APIError):
    """Uniqueness retry bound exhausted (500).

    The issuer gave up after a fixed number of colliding candidates.
    No record was persisted.
    """

    def __init__(self, message: str) -> None:
        super().__init__(
            code="TOKEN_GENERATION_FAILED",
            message=message,
            status_code=500,
        )


class EmailNotConfiguredError(APIError):
    """No email-sending capability is available (503)."""

    def __init__(
        self,
        message: str = (
            "Email delivery is not configured. "
            "Set EMAIL_BACKEND (and RESEND_API_KEY) to send messages."
        ),
    ) -> None:
        super().__init__(
            code="EMAIL_NOT_CONFIGURED",
            message=message,
            status_code=503,
        )


class EmailDeliveryError(APIError):
    """The email provider rejected or failed the send (502).

    The credential issued for the message stays active; it is neither
    retried nor rolled back.
    """

    def __init__(self, message: str = "Failed to deliver sign-in email") -> None:
        super().__init__(
            code="EMAIL_DELIVERY_FAILED",
            message=message,
            status_code=502,
        )


class InternalError(APIError):
    """Unexpected server error (500).

    Use for unhandled exceptions. Never expose stack traces to clients.
    """

    def __init__(self, message: str = "An unexpected error occurred") -> None:
        super().__init__(
            code="INTERNAL_ERROR",
            message=message,
            status_code=500,
        )
