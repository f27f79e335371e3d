"""Worker routes for reservation jobs.

POST /tasks/reservations/no-show-sweep - run the no-show sweep once, now.

The same sweep runs daily from the worker's in-process scheduler; this
route lets an external scheduler or an operator trigger it on demand.
"""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request

from frontdesk.api.task_auth import verify_task_auth
from frontdesk.domain.no_show_sweep import run_no_show_sweep
from frontdesk.observability.correlation import get_correlation_id
from frontdesk.observability.logging import get_logger
from frontdesk.observability.redaction import safe_log_context

router = APIRouter(prefix="/tasks/reservations", tags=["tasks"])

logger = get_logger(__name__)


@router.post("/no-show-sweep")
def no_show_sweep_task(request: Request) -> dict:
    """Cancel card-deposit no-shows and release their rooms.

    Returns the sweep counters: candidates, processed, skipped, failed.
    """
    correlation_id = get_correlation_id()

    if not verify_task_auth(request):
        logger.warning(
            "task auth failed",
            extra={"extra_fields": safe_log_context(correlationId=correlation_id)},
        )
        raise HTTPException(status_code=401, detail="Unauthorized")

    logger.info(
        "no-show sweep task received",
        extra={"extra_fields": safe_log_context(correlationId=correlation_id)},
    )
    return {"success": True, "data": run_no_show_sweep()}
