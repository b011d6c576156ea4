"""
FastAPI application for HubSpot document intake webhooks.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from docintake import __version__
from docintake.config import Settings, settings
from docintake.core.logging import configure_logging, get_logger
from docintake.extractors import get_extractor
from docintake.orchestrator import WebhookOrchestrator
from docintake.processors.attachments import AttachmentBatcher
from docintake.processors.email_report import EmailReportJob
from docintake.routers.queue import router as queue_router
from docintake.routers.webhooks import router as webhooks_router
from docintake.services.files import FileResolver
from docintake.services.hubspot import HubSpotClient
from docintake.services.mailer import Mailer
from docintake.services.record_store import RecordStore
from docintake.task_queue import TaskQueue

log = get_logger(__name__)


class HealthResponse(BaseModel):
    status: str
    version: str
    timestamp: str


def build_orchestrator(config: Settings, queue: TaskQueue) -> WebhookOrchestrator:
    """Wire the pipeline components from settings."""
    hubspot = HubSpotClient()
    files = FileResolver(hubspot=hubspot)
    batcher = AttachmentBatcher(files=files, mailer=Mailer())

    def email_job(contact_id: str) -> EmailReportJob:
        return EmailReportJob(contact_id, hubspot=hubspot, files=files, batcher=batcher)

    return WebhookOrchestrator(
        files=files,
        extractor=get_extractor(files=files),
        records=RecordStore(hubspot=hubspot),
        queue=queue,
        email_job_factory=email_job,
        trigger_property=config.report_trigger_property,
        trigger_subscription=config.report_trigger_subscription,
    )


def create_app(
    orchestrator: WebhookOrchestrator | None = None,
    queue: TaskQueue | None = None,
) -> FastAPI:
    """
    Create the application.

    Components passed in are used as-is; otherwise they are built at startup
    from settings, which fails fast when required credentials are missing.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(log_level=settings.log_level, json_output=settings.json_logs)
        log.info("application_starting", version=__version__)

        task_queue = queue
        if orchestrator is None:
            settings.validate_required()
            task_queue = task_queue or TaskQueue(name="email")
            app.state.orchestrator = build_orchestrator(settings, task_queue)
        else:
            task_queue = task_queue or orchestrator.queue
            app.state.orchestrator = orchestrator
        app.state.queue = task_queue

        yield

        task_queue.shutdown(wait=True, timeout=10)
        app.state.orchestrator.files.close()
        log.info("application_stopped")

    app = FastAPI(
        title="Document Intake",
        description="HubSpot webhook pipeline for permit document extraction and reporting",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["POST", "GET", "OPTIONS"],
        allow_headers=["*"],
    )

    app.include_router(webhooks_router)
    app.include_router(queue_router)

    @app.get("/")
    async def root():
        return {"message": "Document Analysis API", "version": __version__}

    @app.get("/health", response_model=HealthResponse)
    async def health():
        """Health check endpoint."""
        return HealthResponse(
            status="healthy",
            version=__version__,
            timestamp=datetime.now(timezone.utc).isoformat(),
        )

    return app


app = create_app()

# Run with: uvicorn docintake.main:app --host 0.0.0.0 --port 8000
