"""
Configuration for the auth module.

The dashboard uses a single shared password, taken from
`AFFILIATE_SHARED_PASSWORD` via the platform settings. It is looked up on
every check so rotating the setting in tests takes effect immediately.
"""

from affiliate_platform.config import settings


def get_shared_password() -> str:
    """
    Return the configured shared password.

    Raises:
        RuntimeError: no password is configured.
    """
    password = getattr(settings, "SHARED_PASSWORD", "")
    if not password:
        raise RuntimeError("Could not retrieve shared password (AFFILIATE_SHARED_PASSWORD is not set)")
    return password
