"""Secret generation for magic link tokens and one-time codes.

Both generators draw from the ``secrets`` module (OS CSPRNG) and never
touch the store; uniqueness checks belong to the token issuer.
"""

import math
import secrets

# Minimum entropy per token, independent of the requested length.
_MIN_TOKEN_BYTES = 16


def generate_token(length: int) -> str:
    """Generate an opaque hex token of exactly ``length`` characters.

    Draws ``max(16, ceil(length / 2))`` random bytes, hex-encodes them and
    truncates to the requested length.

    Args:
        length: Number of characters to return.

    Returns:
        Lowercase hex string.

    Raises:
        ValueError: If length is less than 1.
    """
    if length < 1:
        msg = f"Token length must be positive, got {length}"
        raise ValueError(msg)
    n_bytes = max(_MIN_TOKEN_BYTES, math.ceil(length / 2))
    return secrets.token_hex(n_bytes)[:length]


def generate_code(length: int) -> str:
    """Generate a numeric one-time code of exactly ``length`` digits.

    Uniform over ``[0, 10**length)``; leading zeros are kept.

    Raises:
        ValueError: If length is less than 1.
    """
    if length < 1:
        msg = f"Code length must be positive, got {length}"
        raise ValueError(msg)
    return str(secrets.randbelow(10**length)).zfill(length)
