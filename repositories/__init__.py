"""
Repositories package.
Provides data access layer for all database operations.
"""

from repositories.asset_repository import AssetRepository
from repositories.alert_repository import AlertRepository

__all__ = [
    'AssetRepository',
    'AlertRepository',
]
