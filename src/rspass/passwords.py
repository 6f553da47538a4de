"""Random password generation."""

from __future__ import annotations

import secrets
import string

UPPERCASE = string.ascii_uppercase
LOWERCASE = string.ascii_lowercase
DIGITS = string.digits
SPECIAL = "!@#$%^&*()"
MIN_LENGTH = 4


def generate_password(length: int = 20) -> str:
    """Generate a password with at least one character of each class.

    One uppercase letter, one lowercase letter, one digit and one special
    character are always included; the rest is alphanumeric. The result
    is shuffled with a CSPRNG.

    Args:
        length: Desired length. Values below 4 still yield 4 characters.

    Returns:
        The generated password.
    """
    rng = secrets.SystemRandom()
    chars = [
        rng.choice(UPPERCASE),
        rng.choice(LOWERCASE),
        rng.choice(DIGITS),
        rng.choice(SPECIAL),
    ]
    alphabet = UPPERCASE + LOWERCASE + DIGITS
    chars.extend(rng.choice(alphabet) for _ in range(max(length - MIN_LENGTH, 0)))
    rng.shuffle(chars)
    return "".join(chars)
