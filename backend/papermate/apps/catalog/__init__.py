"""
Catalog module.

Master data: products keyed by code and trading parties keyed by name.
"""

from . import models  # noqa: F401
