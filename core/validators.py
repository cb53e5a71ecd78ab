"""
Input validation utilities for the campus safety service.
"""
from typing import Iterable, Optional, Tuple, Union

from database.models import Department
from core.exceptions import ValidationFailedError
import config


def validate_password(password: str) -> Tuple[bool, Optional[str]]:
    """
    Validate password length.

    Requirements:
    - Minimum MIN_PASSWORD_LENGTH characters
    - Maximum 72 bytes (bcrypt limit)

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not password:
        return False, "Password is required"

    if len(password) < config.MIN_PASSWORD_LENGTH:
        return False, f"Password must be at least {config.MIN_PASSWORD_LENGTH} characters"

    if len(password.encode('utf-8')) > 72:
        return False, "Password cannot be longer than 72 bytes. Please use a shorter password."

    return True, None


def is_campus_email(email: str, domain: Optional[str] = None) -> bool:
    """Check that an email address belongs to the campus domain."""
    domain = (domain or config.CAMPUS_EMAIL_DOMAIN).lower()
    return bool(email) and email.lower().endswith("@" + domain)


def normalize_coordinate(
    value: Union[str, float, int, None],
    limit: float,
    name: str
) -> Optional[str]:
    """
    Normalize a latitude/longitude reported by a browser.

    Values are stored as the client sent them (text) after checking they are
    numeric and within +/- limit.

    Raises:
        ValueError: If the value is not numeric or out of range
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"{name} must be numeric")
    if not -limit <= number <= limit:
        raise ValueError(f"{name} must be between -{limit:g} and {limit:g}")
    return str(value).strip() if isinstance(value, str) else repr(number)


def parse_department(value: str, allowed: Iterable[Department]) -> Department:
    """
    Parse a department path/body value against the departments a feature serves.

    Raises:
        ValidationFailedError: Unknown department or one not in ``allowed``
    """
    allowed = tuple(allowed)
    try:
        department = Department(value)
    except ValueError:
        department = None
    if department not in allowed:
        names = ", ".join(d.value for d in allowed)
        raise ValidationFailedError(f"Invalid department '{value}'. Expected one of: {names}")
    return department
