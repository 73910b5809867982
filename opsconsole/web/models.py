"""Request models for the OpsConsole web API.

Usage:
    from opsconsole.web.models import AcceptPickRequest

    @router.post("/api/picks/accept")
    async def accept_pick(body: AcceptPickRequest):
        ...
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from opsconsole.models import PickNumberUpdate


# ============================================================================
# Pick Allocation Models
# ============================================================================


class RebuildPicksRequest(BaseModel):
    """Used by: POST /api/picks/rebuild"""

    pending_changes: Dict[str, Dict[str, Any]] = Field(default_factory=dict)


class AcceptPickRequest(BaseModel):
    """Used by: POST /api/picks/accept"""

    variant_id: str
    pick_number: str

    @field_validator("variant_id", "pick_number", mode="before")
    @classmethod
    def coerce_str(cls, v: Any) -> Any:
        return str(v) if v is not None else v


class GeneratePicksRequest(BaseModel):
    """Used by: POST /api/picks/generate"""

    variant_ids: List[str]

    @field_validator("variant_ids", mode="before")
    @classmethod
    def coerce_ids(cls, v: Any) -> Any:
        if isinstance(v, list):
            return [str(i) for i in v]
        return v


class SavePicksRequest(BaseModel):
    """Used by: POST /api/picks/save

    Omitting ``variant_ids`` saves every pending pick number.
    """

    variant_ids: Optional[List[str]] = None


# ============================================================================
# Product Validation Models
# ============================================================================


class ValidatePickNumbersRequest(BaseModel):
    """Used by: POST /api/products/validate-pick-numbers"""

    updates: List[PickNumberUpdate]
