"""
Inventory module.

Append-only stock ledger. Balances are always derived from it.
"""

from . import models  # noqa: F401
