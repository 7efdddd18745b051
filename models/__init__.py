"""
Database models for the market-data service.
All SQLModel table definitions are centralized here.
"""

from models.asset import Asset, AssetCategory, SEGMENT_ORDER
from models.alert import Alert, ALERT_TYPES, ALERT_CONDITIONS

__all__ = [
    'Asset',
    'AssetCategory',
    'SEGMENT_ORDER',
    'Alert',
    'ALERT_TYPES',
    'ALERT_CONDITIONS',
]
