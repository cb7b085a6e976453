# backend/papermate/__init__.py
"""
Import ORM models from each app so that:

- Base.metadata.create_all() sees all tables.
- The package exposes a clear surface.

The actual model classes are kept in papermate/apps/*/models.py.
"""

from .apps.catalog import models as catalog_models            # products + parties
from .apps.inventory import models as inventory_models        # stock ledger
from .apps.purchasing import models as purchasing_models      # purchase orders
from .apps.production import models as production_models      # production runs
from .apps.sales import models as sales_models                # sales orders + payments

__all__ = [
    "catalog_models",
    "inventory_models",
    "purchasing_models",
    "production_models",
    "sales_models",
]
