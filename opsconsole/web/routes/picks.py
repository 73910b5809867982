"""Pick number allocation routes.

The allocation state is held on ``app.state.pick_state``; suggestions and
accepted numbers stay pending there until saved.

Routes:
- POST /api/picks/rebuild              - Rebuild state from the catalog
- GET  /api/picks/suggest/{variant_id} - Suggest (and reserve) a pick number
- POST /api/picks/accept               - Accept a pick number for a variant
- POST /api/picks/generate             - Suggest and accept for many variants
- POST /api/picks/save                 - Validate and persist pending numbers
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from opsconsole.catalog.pick_allocator import (
    PickAllocationState,
    accept,
    generate_pick_numbers,
    rebuild,
    suggest_next,
)
from opsconsole.catalog.repository import CatalogRepository
from opsconsole.catalog.validation import validate_pick_number_uniqueness
from opsconsole.core.errors import VariantNotFoundError
from opsconsole.db.connection import get_session
from opsconsole.models import PickNumberUpdate
from opsconsole.web.dependencies import get_pick_state
from opsconsole.web.models import (
    AcceptPickRequest,
    GeneratePicksRequest,
    RebuildPicksRequest,
    SavePicksRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/picks", tags=["picks"])


def _summary(state: PickAllocationState) -> dict:
    return {
        "variant_count": len(state.variants),
        "used_count": len(state.used_pick_numbers),
        "global_max_pick": state.global_max_pick,
        "next_counter": state.next_counter,
        "pending_count": len(state.pending_changes),
    }


@router.post("/rebuild")
async def rebuild_picks(request: Request, body: RebuildPicksRequest | None = None):
    """Rebuild allocation state from every active catalog variant.

    Pending changes in the body are overlaid; without a body the previous
    state's pending changes are carried over.
    """
    previous = getattr(request.app.state, "pick_state", None)
    if body is not None:
        pending = body.pending_changes
    elif previous is not None:
        pending = previous.pending_changes
    else:
        pending = {}

    async with get_session() as session:
        variants = await CatalogRepository(session).list_active_variants()

    state = rebuild(variants, pending)
    request.app.state.pick_state = state
    logger.info(
        f"Rebuilt pick state: {len(state.variants)} variants, "
        f"{len(state.used_pick_numbers)} pick numbers in use"
    )
    return {"success": True, **_summary(state)}


@router.get("/suggest/{variant_id}")
async def suggest_pick(
    variant_id: str,
    state: PickAllocationState = Depends(get_pick_state),
):
    try:
        number = suggest_next(state, variant_id)
    except VariantNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    return {"success": True, "variant_id": variant_id, "pick_number": number}


@router.post("/accept")
async def accept_pick(
    body: AcceptPickRequest,
    state: PickAllocationState = Depends(get_pick_state),
):
    try:
        accept(state, body.variant_id, body.pick_number)
    except VariantNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    return {
        "success": True,
        "variant_id": body.variant_id,
        "pending_changes": state.pending_changes[body.variant_id],
    }


@router.post("/generate")
async def generate_picks(
    body: GeneratePicksRequest,
    state: PickAllocationState = Depends(get_pick_state),
):
    """Assign pick numbers to the selected variants that have none."""
    try:
        assigned = generate_pick_numbers(state, body.variant_ids)
    except VariantNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    return {
        "success": True,
        "assigned": assigned,
        "skipped": [v for v in body.variant_ids if v not in assigned],
    }


@router.post("/save")
async def save_picks(
    body: SavePicksRequest | None = None,
    state: PickAllocationState = Depends(get_pick_state),
):
    """Persist pending pick numbers after a uniqueness check.

    Returns 409 with the structured conflicts when any pick number is taken.
    """
    selected = set(body.variant_ids) if body and body.variant_ids is not None else None
    changes = {
        variant_id: edits["pick_number"]
        for variant_id, edits in state.pending_changes.items()
        if "pick_number" in edits and (selected is None or variant_id in selected)
    }
    if not changes:
        return {"success": True, "updated": 0}

    updates = [PickNumberUpdate(id=k, pick_number=v) for k, v in changes.items()]

    async with get_session() as session:
        repo = CatalogRepository(session)
        existing = await repo.find_existing_pick_numbers(
            changes.values(), exclude_ids=changes.keys()
        )
        conflicts = validate_pick_number_uniqueness(updates, existing)
        if conflicts:
            raise HTTPException(
                status_code=409,
                detail={
                    "error": "Pick number validation failed",
                    "conflicts": [c.model_dump() for c in conflicts],
                    "message": "; ".join(c.message for c in conflicts),
                },
            )
        updated = await repo.apply_pick_numbers(changes)

    for variant_id in changes:
        edits = state.pending_changes[variant_id]
        edits.pop("pick_number", None)
        if not edits:
            del state.pending_changes[variant_id]

    return {"success": True, "updated": updated}
