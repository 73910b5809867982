"""Order change detector routes.

Routes:
- GET  /api/order-change-detector/job-status             - Job statistics and schedule
- POST /api/order-change-detector/run-job                - Run the job now
- GET  /api/order-change-detector/compare/{order_number} - Compare one order live
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from opsconsole.core.errors import JobAlreadyRunningError
from opsconsole.orders.comparator import compare_orders
from opsconsole.orders.detector import ChangeDetectionJob
from opsconsole.web.dependencies import get_change_detection_job

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/order-change-detector", tags=["order-change-detector"])


@router.get("/job-status")
async def job_status(job: ChangeDetectionJob = Depends(get_change_detection_job)):
    """Cumulative job statistics, configuration and next run time."""
    return {"success": True, "stats": job.get_status()}


@router.post("/run-job")
async def run_job(job: ChangeDetectionJob = Depends(get_change_detection_job)):
    """Trigger a detection run and wait for its statistics.

    Returns 409 while another run is in progress.
    """
    try:
        results = await job.trigger_manual_run()
    except JobAlreadyRunningError as exc:
        raise HTTPException(status_code=409, detail=str(exc))

    return {"success": True, "results": results.model_dump(mode="json")}


@router.get("/compare/{order_number}")
async def compare_order(
    order_number: str,
    job: ChangeDetectionJob = Depends(get_change_detection_job),
):
    """Compare one order across both platforms without touching the cache."""
    order_number = order_number.lstrip("#")

    fulfillment_order = await job.fulfillment.get_order_by_number(order_number)
    if fulfillment_order is None:
        raise HTTPException(
            status_code=404, detail=f"Order {order_number} not found in ShipStation"
        )

    commerce_order = await job.commerce.get_order_by_number(order_number)
    if commerce_order is None:
        raise HTTPException(
            status_code=404, detail=f"Order {order_number} not found in Shopify"
        )

    comparison = compare_orders(commerce_order, fulfillment_order)
    logger.info(
        f"Compared order #{order_number}: {len(comparison.changes)} changes"
    )

    return {
        "success": True,
        "order_number": order_number,
        "order_id": str(fulfillment_order.order_id),
        "customer_name": fulfillment_order.customer_name,
        "comparison": comparison.model_dump(mode="json"),
    }
