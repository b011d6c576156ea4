"""
Background queue endpoints.

GET  /queue/status          — snapshot of pending, running and recent tasks
GET  /queue/tasks/{task_id} — one task's status
POST /queue/clear           — drop pending tasks (running task is not cancelled)
POST /queue/email-report    — queue an email report for a contact directly
"""

from typing import Any

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from docintake.core.logging import get_logger
from docintake.core.models import EmailReportEvent

log = get_logger(__name__)
router = APIRouter(prefix="/queue")


class QueueStatusResponse(BaseModel):
    queued: int = 0
    processing: int = 0
    is_processing: bool = False
    total_in_system: int = 0
    current: dict[str, Any] | None = None
    queue_snapshot: list[dict[str, Any]] = []
    recent: list[dict[str, Any]] = []


class ClearResponse(BaseModel):
    status: str = "cleared"
    removed: int


class EmailReportRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    contact_id: str = Field(alias="contactId", min_length=1)


@router.get("/status", response_model=QueueStatusResponse)
def queue_status(request: Request):
    return request.app.state.queue.get_status()


@router.get("/tasks/{task_id}")
def task_status(task_id: str, request: Request):
    task = request.app.state.queue.get_task(task_id)
    if task is None:
        raise HTTPException(status_code=404, detail=f"Task not found: {task_id}")
    return task


@router.post("/clear", response_model=ClearResponse)
def clear_queue(request: Request):
    cleared = request.app.state.queue.clear()
    log.info("queue_cleared_via_api", removed=cleared)
    return ClearResponse(removed=cleared)


@router.post("/email-report", status_code=202)
def queue_email_report(req: EmailReportRequest, request: Request):
    """Queue the email report for a contact without waiting for a webhook."""
    orchestrator = request.app.state.orchestrator
    try:
        outcome = orchestrator.queue_email_report(EmailReportEvent(contact_id=req.contact_id))
    except RuntimeError as e:
        raise HTTPException(status_code=503, detail=str(e))

    log.info("email_report_queued_via_api", contact_id=req.contact_id, task_id=outcome.task_id)
    return JSONResponse(
        status_code=202,
        content={
            "success": True,
            "status": "queued",
            "message": "Email processing queued successfully",
            "taskId": outcome.task_id,
            "queuePosition": outcome.queue_position,
        },
    )
