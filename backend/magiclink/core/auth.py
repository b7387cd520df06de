"""JWT issuance for the identity collaborator.

After a credential is redeemed, the exchange endpoint hands the validated
email to the provisioning collaborator and signs a session JWT for the
resulting user. Session management beyond issuance is out of scope.
"""

from datetime import UTC, datetime, timedelta

import jwt

_ALGORITHM = "HS256"


def create_jwt(
    *,
    user_id: str,
    secret: str,
    issuer: str,
    audience: str,
    expires_delta: timedelta,
) -> str:
    """Create a signed JWT with standard claims.

    Callers pass every claim source from their own settings instance, so a
    request-scoped override is honored.

    Args:
        user_id: User UUID string for the sub claim.
        secret: HMAC signing secret.
        issuer: Value for the iss claim.
        audience: Value for the aud claim.
        expires_delta: Time until expiration.

    Returns:
        Encoded JWT string.
    """
    now = datetime.now(UTC)
    payload = {
        "sub": user_id,
        "aud": audience,
        "iss": issuer,
        "exp": now + expires_delta,
        "iat": now,
    }
    return jwt.encode(payload, secret, algorithm=_ALGORITHM)
