"""Random post passwords, shaped like the ones WordPress generates itself."""

from __future__ import annotations

import secrets
import string
from typing import Optional

BASE_ALPHABET = string.ascii_letters + string.digits
SPECIAL_CHARS = "!@#$%^&*()"


def generate_password(length: int = 12, special_chars: bool = True, previous: Optional[str] = None) -> str:
    """Return a password drawn with :mod:`secrets` that differs from ``previous``."""

    if length < 1:
        raise ValueError("Password length must be positive")
    alphabet = BASE_ALPHABET + (SPECIAL_CHARS if special_chars else "")
    while True:
        password = "".join(secrets.choice(alphabet) for _ in range(length))
        if password != previous:
            return password
