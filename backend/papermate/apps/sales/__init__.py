"""
Sales module.

Sales orders, shipments and the payment status of each order.
"""

from . import models  # noqa: F401
