"""Application configuration loaded from environment variables.

Settings for the database, the HTTP surface, the token lifecycle and the
email transport. Uses pydantic-settings for validation and .env file support.

The token and email-template fields here are the *deployment* layer of the
settings resolver (see magiclink.services.settings_service). They are optional:
``None`` or an empty string means "not configured", and the built-in
defaults show through.
"""

from typing import Literal

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Known insecure default password that must not be used in production
# Security: Runtime check in check_production_security() prevents use in production
_INSECURE_DEFAULT_PASSWORD = "magiclink_dev_password"  # nosec B105

# Minimum length for AUTH_SECRET in production (256 bits = 32 bytes)
_MIN_AUTH_SECRET_LENGTH = 32

# Bounds for credential sizes. Shorter values are guessable; the upper
# bounds are the login_tokens column widths.
MIN_TOKEN_LENGTH = 16
MAX_TOKEN_LENGTH = 255
MIN_CODE_LENGTH = 4
MAX_CODE_LENGTH = 16


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Database
    database_host: str = "localhost"
    database_port: int = 5432
    database_name: str = "magiclink"
    database_user: str = "magiclink_user"
    database_password: str = _INSECURE_DEFAULT_PASSWORD

    # API
    # 0.0.0.0 binds to all network interfaces (required for Docker containers)
    api_host: str = "0.0.0.0"  # nosec B104
    api_port: int = 8000

    # CORS (Security)
    # CRITICAL: Never set to ["*"] when allow_credentials=True
    allowed_origins: list[str] = ["http://localhost:3000"]

    # Application
    environment: str = "development"
    log_level: str = "INFO"

    # Token lifecycle (deployment layer; unset falls back to built-in defaults)
    token_ttl_minutes: int | None = None
    token_length: int | None = None
    code_length: int | None = None

    # Email templates (deployment layer; empty string means unset)
    email_default_from: str = ""
    email_default_reply_to: str = ""
    email_subject: str = ""
    email_text: str = ""
    email_html: str = ""

    # Email transport
    # resend: HTTP API, console: log the recipient only, disabled: no sender
    email_backend: Literal["resend", "console", "disabled"] = "console"
    # Transport-level sender, used when no template layer sets a From address
    email_from: str = "noreply@example.com"
    resend_api_key: SecretStr = SecretStr("")
    email_timeout_seconds: float = 10.0

    # Identity collaborator (JWT issuance after a successful exchange)
    auth_secret: SecretStr = SecretStr("")
    auth_issuer: str = "magiclink"
    auth_audience: str = "magiclink"
    jwt_expiry_minutes: int = 60 * 24 * 7
    auto_register_users: bool = True
    default_user_role: str = "authenticated"

    # Admin settings endpoints. Empty disables them (every call gets 403).
    admin_api_key: SecretStr = SecretStr("")

    # Rate Limiting (Security)
    # Format: "count/period" (e.g., "10/minute", "5/hour")
    rate_limit_send_mail: str = "5/hour"
    rate_limit_exchange: str = "10/minute"
    rate_limit_enabled: bool = True  # Disable for testing

    @property
    def database_url(self) -> str:
        """Async database URL for SQLAlchemy."""
        return (
            f"postgresql+asyncpg://{self.database_user}:{self.database_password}"
            f"@{self.database_host}:{self.database_port}/{self.database_name}"
        )

    @property
    def database_url_sync(self) -> str:
        """Sync database URL for Alembic."""
        return (
            f"postgresql://{self.database_user}:{self.database_password}"
            f"@{self.database_host}:{self.database_port}/{self.database_name}"
        )

    @model_validator(mode="after")
    def check_token_bounds(self) -> "Settings":
        """Reject credential settings that would make secrets guessable.

        Checks:
        - TOKEN_TTL_MINUTES must be positive
        - TOKEN_LENGTH must be between 16 and 255
        - CODE_LENGTH must be between 4 and 16

        The upper bounds are the column widths of login_tokens.
        """
        if self.token_ttl_minutes is not None and self.token_ttl_minutes <= 0:
            msg = (
                "TOKEN_TTL_MINUTES must be a positive number of minutes. "
                f"Got: {self.token_ttl_minutes}"
            )
            raise ValueError(msg)
        if self.token_length is not None and not (
            MIN_TOKEN_LENGTH <= self.token_length <= MAX_TOKEN_LENGTH
        ):
            msg = (
                f"TOKEN_LENGTH must be an integer between {MIN_TOKEN_LENGTH} "
                f"and {MAX_TOKEN_LENGTH}."
            )
            raise ValueError(msg)
        if self.code_length is not None and not (
            MIN_CODE_LENGTH <= self.code_length <= MAX_CODE_LENGTH
        ):
            msg = (
                f"CODE_LENGTH must be an integer between {MIN_CODE_LENGTH} "
                f"and {MAX_CODE_LENGTH}."
            )
            raise ValueError(msg)
        return self

    @model_validator(mode="after")
    def check_production_security(self) -> "Settings":
        """Validate production security requirements.

        Security: Prevents deployment with known insecure defaults.
        Checks:
        - CORS must not use wildcard origin (incompatible with credentials)
        - Database password must not be the default in production
        - AUTH_SECRET must be set and >= 32 chars in production
        - The resend backend needs an API key in production
        """
        if "*" in self.allowed_origins:
            msg = (
                "ALLOWED_ORIGINS must not contain '*' (wildcard). "
                "This application uses credentials which are "
                "incompatible with wildcard CORS origins."
            )
            raise ValueError(msg)

        if self.environment == "production":
            if self.database_password == _INSECURE_DEFAULT_PASSWORD:
                msg = (
                    "Cannot use default database password in production. "
                    "Set DATABASE_PASSWORD environment variable to a secure value."
                )
                raise ValueError(msg)

            secret_value = self.auth_secret.get_secret_value()
            if len(secret_value) < _MIN_AUTH_SECRET_LENGTH:
                msg = (
                    f"AUTH_SECRET must be at least {_MIN_AUTH_SECRET_LENGTH} "
                    "characters in production. "
                    'Generate with: python -c "import secrets; '
                    'print(secrets.token_hex(32))"'
                )
                raise ValueError(msg)

            if (
                self.email_backend == "resend"
                and not self.resend_api_key.get_secret_value()
            ):
                msg = (
                    "RESEND_API_KEY must be set when EMAIL_BACKEND=resend "
                    "in production."
                )
                raise ValueError(msg)

        return self


settings = Settings()
