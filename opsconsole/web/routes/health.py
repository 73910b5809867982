"""Health check API routes."""

from fastapi import APIRouter, Request, status
from sqlalchemy import text

from opsconsole.db.connection import get_session

router = APIRouter(prefix="/health", tags=["Health"])


@router.get("", status_code=status.HTTP_200_OK)
async def health_check(request: Request):
    """Check application health.

    Verifies database connectivity and reports whether the change
    detection job is wired up.
    """
    job = getattr(request.app.state, "change_detection_job", None)
    detector = "disabled" if job is None else job.state.value

    try:
        async with get_session() as session:
            await session.execute(text("SELECT 1"))
        return {"status": "ok", "database": "connected", "change_detector": detector}
    except Exception as e:
        return {
            "status": "error",
            "database": "disconnected",
            "change_detector": detector,
            "detail": str(e),
        }
