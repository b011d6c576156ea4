"""
Exception taxonomy for the document intake pipeline.
"""


class DocIntakeError(Exception):
    """Base class for all pipeline errors."""


class ConfigurationError(DocIntakeError):
    """Required settings are missing or invalid."""


class ValidationError(DocIntakeError):
    """Malformed webhook event or input. Never retried."""


class UpstreamError(DocIntakeError):
    """File service, CRM or extraction service returned an unusable response."""


class DownloadError(UpstreamError):
    """File download failed (transport error, timeout or size overflow)."""


class ExtractionError(DocIntakeError):
    """Model output could not be turned into an ExtractedRecord."""


class PersistenceError(DocIntakeError):
    """A CRM write was rejected."""


class DeliveryError(DocIntakeError):
    """An outbound email could not be sent."""
