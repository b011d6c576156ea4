"""Processing pipelines: attachment batching and the email report job."""

from .attachments import AttachmentBatcher, build_batches, plan_batches
from .email_report import EmailReportJob

__all__ = ["AttachmentBatcher", "build_batches", "plan_batches", "EmailReportJob"]
