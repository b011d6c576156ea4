"""
Gemini AI extractor implementation.
"""

import mimetypes

from google import genai
from google.genai import types

from docintake.config import settings
from docintake.core.errors import ExtractionError
from docintake.core.logging import get_logger
from docintake.core.models import ExtractedRecord
from docintake.extractors.base import BaseExtractor
from docintake.extractors.parsing import parse_model_json
from docintake.extractors.prompts import PERMIT_EXTRACTION_PROMPT
from docintake.services.files import FileResolver, url_extension

log = get_logger(__name__)


class GeminiExtractor(BaseExtractor):
    """Gemini-based permit data extractor."""

    def __init__(
        self,
        files: FileResolver | None = None,
        client: genai.Client | None = None,
        api_key: str | None = None,
        model: str | None = None,
        max_output_tokens: int | None = None,
    ):
        self.files = files or FileResolver()
        self.model_name = model or settings.gemini_model
        self.max_output_tokens = max_output_tokens or settings.gemini_max_output_tokens

        if client is None:
            api_key = api_key or settings.gemini_api_key
            if not api_key:
                raise ValueError("GEMINI_API_KEY is required")
            client = genai.Client(api_key=api_key)
        self.client = client

    @property
    def _generation_config(self) -> types.GenerateContentConfig:
        return types.GenerateContentConfig(
            response_mime_type="application/json",
            max_output_tokens=self.max_output_tokens,
        )

    def extract_from_image(self, url: str) -> ExtractedRecord:
        """
        Extract permit data from an image.

        Gemini does not fetch remote URLs, so the image bytes are downloaded
        into memory and sent inline.
        """
        log.info("image_extraction_started")
        data = self.files.fetch_bytes(url)
        mime_type = mimetypes.guess_type(f"image{url_extension(url)}")[0] or "image/jpeg"

        text = self._generate([
            PERMIT_EXTRACTION_PROMPT,
            types.Part.from_bytes(data=data, mime_type=mime_type),
        ])
        return self._to_record(text, kind="image")

    def extract_from_document(self, url: str) -> ExtractedRecord:
        """Download the document, upload it to Gemini and extract permit data."""
        log.info("document_extraction_started")
        with self.files.temporary_download(url, suffix=".pdf") as path:
            try:
                uploaded = self.client.files.upload(
                    file=path,
                    config=types.UploadFileConfig(mime_type="application/pdf"),
                )
            except Exception as e:
                log.error("gemini_upload_error", error=str(e))
                raise ExtractionError(f"Document upload failed: {e}") from e

            try:
                text = self._generate([PERMIT_EXTRACTION_PROMPT, uploaded])
            finally:
                self._delete_upload(uploaded)

        return self._to_record(text, kind="document")

    def _generate(self, contents: list) -> str:
        try:
            response = self.client.models.generate_content(
                model=self.model_name,
                contents=contents,
                config=self._generation_config,
            )
        except Exception as e:
            error_str = str(e).lower()
            if any(x in error_str for x in ["rate", "429", "quota"]):
                log.error("gemini_rate_limit", error=str(e))
            elif any(x in error_str for x in ["api key", "auth", "401", "403"]):
                log.error("gemini_auth_error", error=str(e))
            else:
                log.error("gemini_error", error=str(e))
            raise ExtractionError(f"Extraction service call failed: {e}") from e

        text = getattr(response, "text", None)
        if not text or not text.strip():
            raise ExtractionError("Empty response from extraction service")
        return text

    def _to_record(self, text: str, kind: str) -> ExtractedRecord:
        data = parse_model_json(text)
        record = ExtractedRecord.from_dict(data)
        log.info(
            "extraction_complete",
            kind=kind,
            fields=sorted(record.non_null_fields()),
        )
        return record

    def _delete_upload(self, uploaded) -> None:
        name = getattr(uploaded, "name", None)
        if not name:
            return
        try:
            self.client.files.delete(name=name)
        except Exception as e:
            log.warning("gemini_upload_cleanup_failed", file=name, error=str(e))
