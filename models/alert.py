"""
Alert model - a user's price or percentage alert on an asset.
"""

from datetime import datetime
from typing import Optional
from sqlmodel import SQLModel, Field

from models.asset import utcnow

ALERT_TYPES = ("price", "percentage")
ALERT_CONDITIONS = ("above", "below")


class Alert(SQLModel, table=True):
    """User-defined alert. Only created, listed, deactivated and deleted here."""
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(index=True)
    asset_symbol: str = Field(index=True)  # quote-format symbol of an existing asset
    alert_type: str  # "price" or "percentage"
    condition: str  # "above" or "below"
    value: float
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=utcnow)
