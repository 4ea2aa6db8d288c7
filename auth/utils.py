"""
Utility functions for the auth module.
"""

import hashlib
import hmac


def hash_password(password: str) -> str:
    """
    Return a SHA256 hash of the given password.

    Note:
        Lets the configured secret be stored hashed. For per-user credentials
        use a slow hash such as passlib[bcrypt].
    """
    return hashlib.sha256(password.encode()).hexdigest()


def constant_time_equals(a: str, b: str) -> bool:
    return hmac.compare_digest(a.encode(), b.encode())
