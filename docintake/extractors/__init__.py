"""
Structured-data extractors.

Uses Gemini for all extraction tasks.
"""

from docintake.extractors.base import BaseExtractor
from docintake.extractors.parsing import parse_model_json


def get_extractor(**kwargs) -> BaseExtractor:
    """
    Get the extractor for permit documents.

    Returns a GeminiExtractor configured from settings.
    """
    from docintake.extractors.gemini import GeminiExtractor

    return GeminiExtractor(**kwargs)


__all__ = [
    "BaseExtractor",
    "get_extractor",
    "parse_model_json",
]
