"""Client-generated resource tokens."""
from __future__ import annotations

import secrets
import string
import time

# Marqeta rejects tokens longer than 36 characters.
MAX_TOKEN_LENGTH = 36

_ALPHABET = string.digits + string.ascii_lowercase
_SUFFIX_LENGTH = 4
_TIMESTAMP_DIGITS = 8


def generate_token(prefix: str) -> str:
    """Build ``{prefix}_{last 8 digits of epoch ms}_{4 base-36 chars}``.

    Example: ``card_31415926_x7k2``.
    """
    max_prefix = MAX_TOKEN_LENGTH - _TIMESTAMP_DIGITS - _SUFFIX_LENGTH - 2
    if not prefix or len(prefix) > max_prefix:
        raise ValueError(f"token prefix must be 1-{max_prefix} characters")
    timestamp = str(time.time_ns() // 1_000_000)[-_TIMESTAMP_DIGITS:]
    suffix = "".join(secrets.choice(_ALPHABET) for _ in range(_SUFFIX_LENGTH))
    return f"{prefix}_{timestamp}_{suffix}"


def token_suffix(token: str) -> str:
    """Random suffix of a generated token (used for throwaway emails)."""
    return token.rsplit("_", 1)[-1]
