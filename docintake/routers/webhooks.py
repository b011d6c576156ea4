"""
HubSpot webhook endpoint.

Status policy: malformed payloads and ignored events get 204 so HubSpot does
not retry them, invalid property values get 400, analysis soft failures get
204, successful analyses get 200 and queued email reports get 202.
"""

import json

from fastapi import APIRouter, Request, Response
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from docintake.core.errors import ValidationError
from docintake.core.logging import get_logger

log = get_logger(__name__)

router = APIRouter()


@router.post("/webhook/hubspot")
async def hubspot_webhook(request: Request):
    """
    Receive a HubSpot property-change notification.

    The analyze pipeline does blocking I/O, so it runs in the threadpool.
    """
    orchestrator = request.app.state.orchestrator
    body = await request.body()

    try:
        payload = json.loads(body) if body else None
    except (json.JSONDecodeError, UnicodeDecodeError):
        log.warning("webhook_invalid_json")
        return Response(status_code=204)

    if not isinstance(payload, list) or not payload:
        log.warning("webhook_invalid_payload", payload_type=type(payload).__name__)
        return Response(status_code=204)

    try:
        outcome = await run_in_threadpool(orchestrator.handle, payload)
    except ValidationError as e:
        log.warning("webhook_validation_error", error=str(e))
        return JSONResponse(status_code=400, content={"success": False, "error": str(e)})

    if outcome.kind == "email":
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

    if outcome.kind == "analyze" and outcome.analysis is not None:
        if outcome.analysis.success:
            return JSONResponse(status_code=200, content=outcome.analysis.to_dict())
        return Response(status_code=204)

    log.info("webhook_ignored", reason=outcome.reason)
    return Response(status_code=204)
