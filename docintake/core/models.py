"""
Data models for document intake.

Uses dataclasses for clean, typed data structures.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ContentCategory(str, Enum):
    """Content category derived from a file URL's extension."""

    IMAGE = "image"
    DOCUMENT = "document"
    UNSUPPORTED = "unsupported"


class TaskStatus(str, Enum):
    """Lifecycle states of a queued background task."""

    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class InboundEvent:
    """One HubSpot webhook notification."""

    object_id: str | None = None
    property_name: str | None = None
    property_value: str | None = None
    subscription_type: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "InboundEvent":
        """Create InboundEvent from the HubSpot webhook payload."""
        object_id = data.get("objectId")
        value = data.get("propertyValue")
        return cls(
            object_id=str(object_id) if object_id is not None else None,
            property_name=data.get("propertyName"),
            property_value=str(value) if value is not None else None,
            subscription_type=data.get("subscriptionType"),
        )

    @property
    def has_value(self) -> bool:
        return bool(self.property_value and self.property_value.strip())


@dataclass(frozen=True)
class SignedDownloadLink:
    """Time-limited download URL. Fetched fresh per operation, never cached."""

    url: str
    file_id: str | None = None
    expires_implicitly: bool = True


@dataclass(frozen=True)
class FileRecordRef:
    """Parsed "fileId,objectTypeId,recordId" property value."""

    file_id: str
    entity_type: str
    entity_id: str


# camelCase key -> attribute, including the aliases the model sometimes uses
_RECORD_KEYS: dict[str, str] = {
    "firstName": "first_name",
    "lastName": "last_name",
    "streetAddress": "street_address",
    "dateOfBirth": "date_of_birth",
    "nationality": "nationality",
    "permitExpiryDate": "permit_expiry_date",
    "permitType": "permit_type",
}
_RECORD_ALIASES: dict[str, str] = {
    "workPermitDate": "permit_expiry_date",
    "workPermitType": "permit_type",
}


@dataclass(frozen=True)
class ExtractedRecord:
    """Structured permit data returned by the extraction service."""

    first_name: str | None = None
    last_name: str | None = None
    street_address: str | None = None
    date_of_birth: str | None = None
    nationality: str | None = None
    permit_expiry_date: str | None = None
    permit_type: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ExtractedRecord":
        """Create ExtractedRecord from a model response dict."""
        values: dict[str, str | None] = {}
        for key, attr in {**_RECORD_ALIASES, **_RECORD_KEYS}.items():
            if key not in data:
                continue
            raw = data[key]
            if raw is None:
                values.setdefault(attr, None)
                continue
            text = str(raw).strip()
            values[attr] = text or None
        return cls(**values)

    def to_dict(self) -> dict[str, str | None]:
        """Convert to dict for JSON storage."""
        return {key: getattr(self, attr) for key, attr in _RECORD_KEYS.items()}

    def non_null_fields(self) -> dict[str, str]:
        return {k: v for k, v in self.to_dict().items() if v is not None}

    @property
    def full_name(self) -> str | None:
        """First and last name joined with a space, skipping empty parts."""
        name = " ".join(p for p in (self.first_name, self.last_name) if p)
        return name or None

    @property
    def is_empty(self) -> bool:
        return not self.non_null_fields()


@dataclass
class PropertyUpdate:
    """Outcome of one per-field CRM write."""

    property: str
    success: bool
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"property": self.property, "success": self.success}
        if self.error:
            data["error"] = self.error
        return data


@dataclass
class QueuedTask:
    """A unit of background work owned by the TaskQueue."""

    id: str
    func: Callable[[], Any]
    payload: dict[str, Any] = field(default_factory=dict)
    status: TaskStatus = TaskStatus.QUEUED
    attempts: int = 0
    max_attempts: int = 3
    created_at: datetime = field(default_factory=utcnow)
    started_at: datetime | None = None
    completed_at: datetime | None = None
    error: str | None = None
    result: Any = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-friendly dict for status introspection."""
        return {
            "id": self.id,
            "payload": self.payload,
            "status": self.status.value,
            "attempts": self.attempts,
            "max_attempts": self.max_attempts,
            "created_at": self.created_at.isoformat(),
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "error": self.error,
        }


@dataclass(frozen=True)
class AttachmentFile:
    """A locally materialized file ready to be attached to an email."""

    filename: str
    local_path: str
    size_bytes: int


@dataclass
class AttachmentBatch:
    """Ordered group of attachments sent as one message."""

    files: list[AttachmentFile] = field(default_factory=list)

    @property
    def size_bytes(self) -> int:
        return sum(f.size_bytes for f in self.files)

    def __len__(self) -> int:
        return len(self.files)


@dataclass
class BatchPlan:
    """Batches plus the files that were too large to send at all."""

    batches: list[AttachmentBatch] = field(default_factory=list)
    skipped: list[AttachmentFile] = field(default_factory=list)

    @property
    def total_attachments(self) -> int:
        return sum(len(b) for b in self.batches)


@dataclass
class DispatchResult:
    """Result of sending all batches of an email report."""

    sent: int = 0
    total_attachments: int = 0
    message_ids: list[str] = field(default_factory=list)


# Tagged webhook event variants


@dataclass(frozen=True)
class AnalyzeEvent:
    """Event whose property value references a file to analyze."""

    property_value: str
    object_id: str | None = None


@dataclass(frozen=True)
class EmailReportEvent:
    """Event asking for the contact's documents to be emailed."""

    contact_id: str


@dataclass(frozen=True)
class IgnoredEvent:
    """Event that requires no work."""

    reason: str


WebhookEvent = AnalyzeEvent | EmailReportEvent | IgnoredEvent


@dataclass
class AnalysisResult:
    """Result of the analyze pipeline. Failures are soft (success=False)."""

    success: bool
    message: str
    file_id: str | None = None
    entity_type: str | None = None
    entity_id: str | None = None
    file_type: str | None = None
    extracted: dict[str, Any] | None = None
    individual_updates: list[PropertyUpdate] = field(default_factory=list)
    error: str | None = None
    error_logged: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Convert to the webhook response body."""
        data: dict[str, Any] = {
            "success": self.success,
            "message": self.message,
            "parsedData": {
                "fileId": self.file_id,
                "objectTypeId": self.entity_type,
                "recordId": self.entity_id,
            },
            "fileType": self.file_type,
            "individualUpdates": [u.to_dict() for u in self.individual_updates],
        }
        if self.extracted is not None:
            data["extractedData"] = self.extracted
        if self.error:
            data["error"] = self.error
            data["errorLogged"] = self.error_logged
        return data


@dataclass
class WebhookOutcome:
    """What the orchestrator did with an inbound webhook call."""

    kind: str  # "analyze", "email" or "ignored"
    analysis: AnalysisResult | None = None
    task_id: str | None = None
    queue_position: int | None = None
    reason: str | None = None
