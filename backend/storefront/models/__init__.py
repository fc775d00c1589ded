"""Database models."""

# Import all models here so Alembic can detect them
from storefront.models.account import Account, AccountRole, AuthProvider

__all__ = [
    "Account",
    "AccountRole",
    "AuthProvider",
]
