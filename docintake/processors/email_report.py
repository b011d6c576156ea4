"""
Email report job.

Collects the documents attached to a contact's services and emails them in
size-bounded batches. Runs on the TaskQueue worker.
"""

from typing import Any

from docintake.config import settings
from docintake.core import constants
from docintake.core.errors import UpstreamError
from docintake.core.logging import bind_context, clear_context, get_logger
from docintake.core.models import AttachmentFile, SignedDownloadLink
from docintake.processors.attachments import AttachmentBatcher
from docintake.services.files import FileResolver
from docintake.services.hubspot import HubSpotClient

log = get_logger(__name__)

REPORT_MESSAGE = "Please find the attached documents for your review."


class EmailReportJob:
    """
    Callable task that emails a contact's service documents.

    contact -> first associated deal -> associated services -> file_id
    property -> signed URLs -> downloads -> batches -> messages.
    """

    def __init__(
        self,
        contact_id: str,
        hubspot: HubSpotClient,
        files: FileResolver,
        batcher: AttachmentBatcher,
        recipient: str | None = None,
        subject: str | None = None,
        message: str = REPORT_MESSAGE,
    ):
        self.contact_id = contact_id
        self.hubspot = hubspot
        self.files = files
        self.batcher = batcher
        self.recipient = recipient or settings.email_send_to
        self.subject = subject or settings.email_subject
        self.message = message

    def __call__(self) -> dict[str, Any]:
        bind_context(contact_id=self.contact_id)
        downloaded: list[AttachmentFile] = []
        try:
            log.info("email_report_started")
            links = self._collect_links()
            downloaded = self.batcher.download_all(links)
            if not downloaded:
                raise UpstreamError("No valid files found to attach")

            plan = self.batcher.plan(downloaded)
            if not plan.batches:
                raise UpstreamError("All files exceed the attachment size limit")

            result = self.batcher.dispatch(
                plan.batches,
                self.recipient,
                self.subject,
                self.message,
            )
            log.info(
                "email_report_sent",
                emails_sent=result.sent,
                files_attached=result.total_attachments,
                files_skipped=len(plan.skipped),
            )
            return {
                "contact_id": self.contact_id,
                "emails_sent": result.sent,
                "files_attached": result.total_attachments,
                "files_skipped": len(plan.skipped),
            }
        finally:
            self.batcher.cleanup(downloaded)
            clear_context()

    def _collect_links(self) -> list[SignedDownloadLink]:
        deal_ids = self._associations(constants.CONTACT, self.contact_id, constants.DEAL, limit=1)
        if not deal_ids:
            raise UpstreamError(f"No deal found for contact: {self.contact_id}")
        deal_id = deal_ids[0]

        service_ids = self._associations(constants.DEAL, deal_id, constants.SERVICE, limit=25)
        if not service_ids:
            raise UpstreamError(f"No services found for deal: {deal_id}")

        try:
            services = self.hubspot.batch_read(
                constants.SERVICE, service_ids, [constants.FILE_ID_PROPERTY]
            )
        except Exception as e:
            raise UpstreamError(f"Failed to read services for deal {deal_id}: {e}") from e

        links: list[SignedDownloadLink] = []
        for service in services:
            file_id = (service.get("properties") or {}).get(constants.FILE_ID_PROPERTY)
            if not file_id:
                continue
            try:
                links.append(self.files.resolve(file_id))
            except UpstreamError as e:
                log.error("attachment_resolve_failed", file_id=file_id, error=str(e))

        log.info("attachments_resolved", deal_id=deal_id, services=len(services), files=len(links))
        return links

    def _associations(self, from_type: str, from_id: str, to_type: str, limit: int) -> list[str]:
        try:
            return self.hubspot.get_associations(from_type, from_id, to_type, limit=limit)
        except Exception as e:
            raise UpstreamError(
                f"Failed to list {to_type} associations of {from_type} {from_id}: {e}"
            ) from e
