"""
Purchasing module.

Purchase orders and goods received against them.
"""

from . import models  # noqa: F401
