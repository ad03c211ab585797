"""
Model registration for migrations: import all row models that should be migrated by Alembic here.
When adding/removing apps, add/remove the corresponding imports here; no need to change alembic/env.py.
"""
from apps.products.models import ProductPo

__all__ = ["ProductPo"]
