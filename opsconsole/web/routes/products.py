"""Catalog product routes.

Routes:
- POST /api/products/validate-pick-numbers - Check proposed pick numbers before save
- GET  /api/products/duplicates            - Historical duplicate SKUs and pick numbers
"""

from __future__ import annotations

from fastapi import APIRouter

from opsconsole.catalog.repository import CatalogRepository
from opsconsole.catalog.validation import (
    find_duplicate_pick_numbers,
    find_duplicate_skus,
    find_empty_pick_numbers,
    validate_pick_number_uniqueness,
)
from opsconsole.db.connection import get_session
from opsconsole.web.models import ValidatePickNumbersRequest

router = APIRouter(prefix="/api/products", tags=["products"])


@router.post("/validate-pick-numbers")
async def validate_pick_numbers(body: ValidatePickNumbersRequest):
    """Report conflicts without saving anything."""
    async with get_session() as session:
        existing = await CatalogRepository(session).find_existing_pick_numbers(
            [u.pick_number for u in body.updates if u.pick_number],
            exclude_ids=[u.id for u in body.updates],
        )

    conflicts = validate_pick_number_uniqueness(body.updates, existing)
    warnings = [
        {"variant_id": variant_id, "field": "pick_number", "message": "Pick number is empty"}
        for variant_id in find_empty_pick_numbers(body.updates)
    ]
    return {
        "valid": not conflicts,
        "conflicts": [c.model_dump() for c in conflicts],
        "warnings": warnings,
    }


@router.get("/duplicates")
async def duplicates():
    async with get_session() as session:
        variants = await CatalogRepository(session).list_active_variants()

    return {
        "duplicate_skus": [g.model_dump() for g in find_duplicate_skus(variants)],
        "duplicate_pick_numbers": [
            g.model_dump() for g in find_duplicate_pick_numbers(variants)
        ],
    }
