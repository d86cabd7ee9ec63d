"""Delivery confirmation codes.

The client receives the code when placing the order and reads it out to
the courier at the door. Codes are upper-case alphanumeric and compared
case-insensitively after trimming.
"""

import secrets
import string

from protean.exceptions import ValidationError

from marketplace.config import CONFIRMATION_CODE_LENGTH

# No 0/O or 1/I: the code is read aloud and typed on a phone keypad
_ALPHABET = "".join(c for c in string.ascii_uppercase + string.digits if c not in "0O1I")


def generate_confirmation_code(length: int = CONFIRMATION_CODE_LENGTH) -> str:
    return "".join(secrets.choice(_ALPHABET) for _ in range(length))


def normalize_confirmation_code(candidate: str | None) -> str:
    """Trim and upper-case a submitted code, rejecting the wrong length."""
    code = (candidate or "").strip()
    if len(code) != CONFIRMATION_CODE_LENGTH:
        raise ValidationError(
            {"confirmation_code": [f"Code must be {CONFIRMATION_CODE_LENGTH} characters"]}
        )
    return code.upper()


def codes_match(candidate: str, stored: str | None) -> bool:
    if not stored:
        return False
    return secrets.compare_digest(candidate.upper().encode(), stored.strip().upper().encode())
