"""
Core authentication logic.

Validates the dashboard's shared password.
"""

from typing import Optional

from .config import get_shared_password
from .utils import constant_time_equals, hash_password


def verify_password(provided: Optional[str]) -> bool:
    """
    Check a provided password against the shared one.

    The stored value may be plain text or its SHA256 hex digest.

    Returns:
        bool: False for an empty or wrong password.

    Raises:
        RuntimeError: no shared password is configured.
    """
    if not provided:
        return False
    stored = get_shared_password()
    return constant_time_equals(stored, provided) or constant_time_equals(stored, hash_password(provided))
