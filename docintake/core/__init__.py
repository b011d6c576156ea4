"""Core modules for document intake."""

from .logging import configure_logging, get_logger
from .errors import (
    DocIntakeError,
    ConfigurationError,
    ValidationError,
    UpstreamError,
    DownloadError,
    ExtractionError,
    PersistenceError,
    DeliveryError,
)
from .models import (
    InboundEvent,
    SignedDownloadLink,
    ContentCategory,
    ExtractedRecord,
    TaskStatus,
    QueuedTask,
    AttachmentFile,
    AttachmentBatch,
    AnalysisResult,
)

__all__ = [
    "configure_logging",
    "get_logger",
    "DocIntakeError",
    "ConfigurationError",
    "ValidationError",
    "UpstreamError",
    "DownloadError",
    "ExtractionError",
    "PersistenceError",
    "DeliveryError",
    "InboundEvent",
    "SignedDownloadLink",
    "ContentCategory",
    "ExtractedRecord",
    "TaskStatus",
    "QueuedTask",
    "AttachmentFile",
    "AttachmentBatch",
    "AnalysisResult",
]
