"""
Abstract base class for structured-data extractors.
"""

from abc import ABC, abstractmethod

from docintake.core.errors import ExtractionError
from docintake.core.models import ContentCategory, ExtractedRecord


class BaseExtractor(ABC):
    """Abstract extractor interface."""

    @abstractmethod
    def extract_from_image(self, url: str) -> ExtractedRecord:
        """
        Extract permit data from an image.

        Args:
            url: Signed download URL of the image

        Returns:
            ExtractedRecord built from the model response
        """
        pass

    @abstractmethod
    def extract_from_document(self, url: str) -> ExtractedRecord:
        """
        Extract permit data from a document (PDF).

        The document is downloaded to a temporary file which must be removed
        before returning, whether extraction succeeded or not.

        Args:
            url: Signed download URL of the document

        Returns:
            ExtractedRecord built from the model response
        """
        pass

    def extract(self, url: str, category: ContentCategory) -> ExtractedRecord:
        """Dispatch to the image or document extractor."""
        if category == ContentCategory.IMAGE:
            return self.extract_from_image(url)
        if category == ContentCategory.DOCUMENT:
            return self.extract_from_document(url)
        raise ExtractionError(f"Unsupported file type: {category.value}")
