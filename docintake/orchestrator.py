"""
Webhook orchestration.

Classifies an inbound HubSpot event and runs the matching pipeline:

- analyze: resolve file -> classify type -> extract -> persist (synchronous)
- email report: enqueue an EmailReportJob on the TaskQueue (asynchronous)
- ignored: nothing to do

Redelivered events are processed again; writes are plain property
overwrites, so reprocessing the same file leaves the record in the same state.
"""

from typing import Any, Callable

from docintake.config import settings
from docintake.core.constants import SUCCESS_MESSAGE
from docintake.core.errors import (
    DocIntakeError,
    ExtractionError,
    PersistenceError,
    UpstreamError,
    ValidationError,
)
from docintake.core.logging import bind_context, clear_context, get_logger
from docintake.core.models import (
    AnalysisResult,
    AnalyzeEvent,
    ContentCategory,
    EmailReportEvent,
    FileRecordRef,
    IgnoredEvent,
    InboundEvent,
    WebhookEvent,
    WebhookOutcome,
)
from docintake.extractors.base import BaseExtractor
from docintake.services.files import FileResolver
from docintake.services.record_store import RecordStore
from docintake.task_queue import TaskQueue

log = get_logger(__name__)


def parse_file_record(value: str | None) -> FileRecordRef:
    """
    Parse a "fileId,objectTypeId,recordId" property value.

    Raises:
        ValidationError: not exactly three non-empty comma-separated parts
    """
    if not isinstance(value, str):
        raise ValidationError("Invalid file record format: value must be a string")
    parts = [p.strip() for p in value.split(",")]
    if len(parts) != 3:
        raise ValidationError(
            f"Invalid file record format: expected 3 comma-separated parts, got {len(parts)}"
        )
    if not all(parts):
        raise ValidationError("Invalid file record format: all parts must be non-empty")
    return FileRecordRef(file_id=parts[0], entity_type=parts[1], entity_id=parts[2])


def classify_event(
    event: InboundEvent,
    trigger_property: str | None = None,
    trigger_subscription: str | None = None,
) -> WebhookEvent:
    """Map an inbound event to the pipeline that should handle it."""
    trigger_property = trigger_property or settings.report_trigger_property
    trigger_subscription = trigger_subscription or settings.report_trigger_subscription

    if (
        event.property_name == trigger_property
        and event.subscription_type == trigger_subscription
    ):
        if not event.object_id:
            return IgnoredEvent(reason="report trigger without objectId")
        return EmailReportEvent(contact_id=event.object_id)

    if event.has_value:
        return AnalyzeEvent(property_value=event.property_value, object_id=event.object_id)

    return IgnoredEvent(reason="propertyValue is missing")


class WebhookOrchestrator:
    """Runs the analyze and email-report pipelines for HubSpot webhooks."""

    def __init__(
        self,
        files: FileResolver,
        extractor: BaseExtractor,
        records: RecordStore,
        queue: TaskQueue,
        email_job_factory: Callable[[str], Callable[[], Any]],
        trigger_property: str | None = None,
        trigger_subscription: str | None = None,
    ):
        self.files = files
        self.extractor = extractor
        self.records = records
        self.queue = queue
        self.email_job_factory = email_job_factory
        self.trigger_property = trigger_property or settings.report_trigger_property
        self.trigger_subscription = trigger_subscription or settings.report_trigger_subscription

    def handle(self, payload: Any) -> WebhookOutcome:
        """
        Handle one webhook delivery. Only the first event is consumed.

        Raises:
            ValidationError: payload is not a non-empty list of event objects,
                or the property value is not a valid file record
        """
        if not isinstance(payload, list) or not payload:
            raise ValidationError("Invalid webhook data: expected a non-empty array")
        first = payload[0]
        if not isinstance(first, dict):
            raise ValidationError("Invalid webhook data: event must be an object")

        event = InboundEvent.from_dict(first)
        classified = classify_event(event, self.trigger_property, self.trigger_subscription)
        log.info(
            "webhook_classified",
            kind=type(classified).__name__,
            object_id=event.object_id,
            property_name=event.property_name,
            subscription_type=event.subscription_type,
        )

        if isinstance(classified, EmailReportEvent):
            return self.queue_email_report(classified)
        if isinstance(classified, AnalyzeEvent):
            return WebhookOutcome(kind="analyze", analysis=self.analyze(classified.property_value))
        return WebhookOutcome(kind="ignored", reason=classified.reason)

    def analyze(self, property_value: str) -> AnalysisResult:
        """
        Run resolve -> classify -> extract -> persist for one file.

        Upstream, extraction and persistence failures are returned as a soft
        failure and written to the record's error log.

        Raises:
            ValidationError: property_value is not a valid file record
        """
        ref = parse_file_record(property_value)
        bind_context(file_id=ref.file_id, entity_type=ref.entity_type, entity_id=ref.entity_id)
        result = AnalysisResult(
            success=False,
            message="",
            file_id=ref.file_id,
            entity_type=ref.entity_type,
            entity_id=ref.entity_id,
        )
        try:
            link = self.files.resolve(ref.file_id)
            category = self.files.classify(link.url)
            result.file_type = category.value
            log.info("file_classified", file_type=category.value)

            if category == ContentCategory.UNSUPPORTED:
                return self._soft_failure(result, "Unsupported file type", stage="classify")

            record = self.extractor.extract(link.url, category)
            result.extracted = record.to_dict()

            result.individual_updates = self.records.save_extracted_record(
                ref.entity_type, ref.entity_id, record
            )
        except ExtractionError as e:
            return self._soft_failure(result, str(e), stage="extract")
        except UpstreamError as e:
            return self._soft_failure(result, str(e), stage="fetch")
        except PersistenceError as e:
            return self._soft_failure(result, str(e), stage="persist")
        except DocIntakeError as e:
            return self._soft_failure(result, str(e), stage="unknown")
        finally:
            clear_context()

        result.success = True
        result.message = SUCCESS_MESSAGE
        log.info(
            "document_analyzed",
            file_id=ref.file_id,
            file_type=result.file_type,
            updates=len(result.individual_updates),
        )
        return result

    def _soft_failure(self, result: AnalysisResult, message: str, stage: str) -> AnalysisResult:
        log.warning("analysis_failed", stage=stage, error=message)
        result.success = False
        result.message = "File processing failed"
        result.error = message
        result.error_logged = self.records.log_error(
            result.entity_type,
            result.entity_id,
            message,
            {"stage": stage, "fileId": result.file_id, "fileType": result.file_type},
        )
        return result

    def queue_email_report(self, event: EmailReportEvent) -> WebhookOutcome:
        """Enqueue the email report job and return without waiting for it."""
        task_id, position = self.queue.submit(
            self.email_job_factory(event.contact_id),
            payload={"contact_id": event.contact_id},
        )
        log.info("email_report_queued", contact_id=event.contact_id, task_id=task_id)
        return WebhookOutcome(kind="email", task_id=task_id, queue_position=position)
