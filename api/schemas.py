"""
Pydantic schemas for the HTTP layer.
"""

from datetime import datetime
from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator

from models.alert import ALERT_CONDITIONS, ALERT_TYPES


class AlertCreate(BaseModel):
    asset_symbol: str = Field(..., min_length=1)
    alert_type: str
    condition: str
    value: float

    @field_validator('asset_symbol')
    @classmethod
    def normalize_symbol(cls, v: str) -> str:
        return v.strip().upper()

    @field_validator('alert_type')
    @classmethod
    def check_alert_type(cls, v: str) -> str:
        if v not in ALERT_TYPES:
            raise ValueError(f"alert_type must be one of {', '.join(ALERT_TYPES)}")
        return v

    @field_validator('condition')
    @classmethod
    def check_condition(cls, v: str) -> str:
        if v not in ALERT_CONDITIONS:
            raise ValueError(f"condition must be one of {', '.join(ALERT_CONDITIONS)}")
        return v


class AlertResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: str
    asset_symbol: str
    alert_type: str
    condition: str
    value: float
    is_active: bool
    created_at: datetime


class AlertDeleteResponse(BaseModel):
    success: bool
    deleted: int


class CleanupResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    dry_run: bool = Field(..., alias='dryRun')
    deleted_count: int = Field(..., alias='deletedCount')
    deleted_ids: List[str] = Field(default_factory=list, alias='deletedIds')
    remaining_count: int = Field(..., alias='remainingCount')


class DeleteAssetResponse(BaseModel):
    success: bool
    message: str
