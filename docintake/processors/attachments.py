"""
Attachment batching for report emails.

Files are grouped into batches whose total size stays within a byte
ceiling, and each batch is sent as its own message.
"""

import os
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Iterable

from docintake.config import settings
from docintake.core.logging import get_logger
from docintake.core.models import (
    AttachmentBatch,
    AttachmentFile,
    BatchPlan,
    DispatchResult,
    SignedDownloadLink,
)
from docintake.services.files import FileResolver, extension_for, remove_quietly
from docintake.services.mailer import Mailer, render_body

log = get_logger(__name__)

MAX_PARALLEL_DOWNLOADS = 5


def plan_batches(files: Iterable[AttachmentFile], max_batch_bytes: int) -> BatchPlan:
    """
    Greedily pack files into batches, preserving input order.

    A batch may reach max_batch_bytes exactly. A file larger than
    max_batch_bytes on its own is skipped rather than sent alone.
    """
    plan = BatchPlan()
    current = AttachmentBatch()

    for f in files:
        if f.size_bytes > max_batch_bytes:
            log.warning(
                "attachment_skipped_oversize",
                filename=f.filename,
                size=f.size_bytes,
                max_batch_bytes=max_batch_bytes,
            )
            plan.skipped.append(f)
            continue

        if current.files and current.size_bytes + f.size_bytes > max_batch_bytes:
            plan.batches.append(current)
            current = AttachmentBatch()
        current.files.append(f)

    if current.files:
        plan.batches.append(current)
    return plan


def build_batches(files: Iterable[AttachmentFile], max_batch_bytes: int) -> list[AttachmentBatch]:
    return plan_batches(files, max_batch_bytes).batches


def batch_subject(subject: str, index: int, total: int) -> str:
    """Suffix the subject with (i/N) when the report spans several messages."""
    return f"{subject} ({index}/{total})" if total > 1 else subject


class AttachmentBatcher:
    """Downloads files, batches them by size and mails each batch."""

    def __init__(
        self,
        files: FileResolver | None = None,
        mailer: Mailer | None = None,
        max_batch_bytes: int | None = None,
        batch_delay: float | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.files = files or FileResolver()
        self.mailer = mailer or Mailer()
        self.max_batch_bytes = max_batch_bytes or settings.max_attachment_batch_bytes
        self.batch_delay = (
            batch_delay if batch_delay is not None else settings.email_batch_delay_seconds
        )
        self._sleep = sleep

    def download_all(self, links: list[SignedDownloadLink]) -> list[AttachmentFile]:
        """
        Download every link to a temp file, in parallel.

        A failed download is logged and left out. The result keeps input order.
        """
        if not links:
            return []

        with ThreadPoolExecutor(max_workers=min(MAX_PARALLEL_DOWNLOADS, len(links))) as pool:
            results = list(pool.map(self._download_one, links))
        return [r for r in results if r is not None]

    def _download_one(self, link: SignedDownloadLink) -> AttachmentFile | None:
        ext = extension_for(link.url)
        path = self.files.temp_path(ext)
        try:
            size = self.files.materialize(link.url, path)
        except Exception as e:
            log.error("attachment_download_failed", file_id=link.file_id, error=str(e))
            return None
        name = link.file_id or os.path.splitext(os.path.basename(path))[0]
        return AttachmentFile(
            filename=f"document_{name}{ext}",
            local_path=path,
            size_bytes=size,
        )

    def plan(self, files: list[AttachmentFile]) -> BatchPlan:
        return plan_batches(files, self.max_batch_bytes)

    def dispatch(
        self,
        batches: list[AttachmentBatch],
        recipient: str,
        subject: str,
        body_template: str,
    ) -> DispatchResult:
        """
        Send each batch as one message, in order, pausing between messages.

        Stops at the first failed send and lets its DeliveryError propagate.
        """
        result = DispatchResult()
        total = len(batches)

        for index, batch in enumerate(batches, start=1):
            if index > 1 and self.batch_delay:
                self._sleep(self.batch_delay)

            message_subject = batch_subject(subject, index, total)
            message_id = self.mailer.send(
                recipient,
                message_subject,
                render_body(message_subject, body_template, len(batch)),
                batch.files,
            )
            result.sent += 1
            result.total_attachments += len(batch)
            result.message_ids.append(message_id)
            log.info(
                "batch_sent",
                batch=index,
                total_batches=total,
                attachments=len(batch),
                size=batch.size_bytes,
            )

        return result

    @staticmethod
    def cleanup(files: Iterable[AttachmentFile]) -> int:
        """Delete materialized files. Best-effort; returns how many were removed."""
        return sum(1 for f in files if remove_quietly(f.local_path))
