"""Shared dependencies for OpsConsole web routes.

Long-lived objects (the change detection job, the pick allocation state)
live on ``app.state`` and are injected with Depends().
"""

from __future__ import annotations

from fastapi import HTTPException, Request

from opsconsole.catalog.pick_allocator import PickAllocationState
from opsconsole.orders.detector import ChangeDetectionJob


def get_change_detection_job(request: Request) -> ChangeDetectionJob:
    """The app's change detection job.

    Raises:
        HTTPException: 503 when platform credentials were not configured
    """
    job = getattr(request.app.state, "change_detection_job", None)
    if job is None:
        raise HTTPException(
            status_code=503,
            detail="Order change detection is not configured",
        )
    return job


def get_pick_state(request: Request) -> PickAllocationState:
    """The current pick allocation state.

    Raises:
        HTTPException: 409 until POST /api/picks/rebuild has been called
    """
    state = getattr(request.app.state, "pick_state", None)
    if state is None:
        raise HTTPException(
            status_code=409,
            detail="Pick allocation state not built, call POST /api/picks/rebuild first",
        )
    return state
