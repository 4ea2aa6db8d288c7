"""
affiliate_platform package initializer.
"""

from . import analytics
from . import conversions
from . import manager
from . import storage

__all__ = ["analytics", "conversions", "manager", "storage"]
