"""
Persistence of extracted records to HubSpot.
"""

import json
import time
from typing import Any, Callable

import requests

from docintake.config import settings
from docintake.core.constants import (
    ERROR_LOG_PROPERTY,
    EXTRACTED_DATA_PROPERTY,
    FIELD_PROPERTIES,
)
from docintake.core.errors import PersistenceError
from docintake.core.logging import get_logger
from docintake.core.models import ExtractedRecord, PropertyUpdate, utcnow
from docintake.services.hubspot import HubSpotClient

log = get_logger(__name__)


def _describe(error: Exception) -> str:
    if isinstance(error, requests.HTTPError) and error.response is not None:
        return f"HubSpot update failed: {error.response.status_code}"
    return f"HubSpot update failed: {error}"


class RecordStore:
    """Writes extracted data and error logs to CRM records.

    Writes are never retried here; retry policy belongs to the caller.
    """

    def __init__(
        self,
        hubspot: HubSpotClient | None = None,
        update_delay: float | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.hubspot = hubspot or HubSpotClient()
        self.update_delay = (
            update_delay if update_delay is not None else settings.property_update_delay_seconds
        )
        self._sleep = sleep

    def save_extracted_record(
        self,
        entity_type: str,
        entity_id: str,
        record: ExtractedRecord,
    ) -> list[PropertyUpdate]:
        """
        Persist the full record, then each field as its own property.

        The full record is written first and its failure raises. Per-field
        writes are independent of each other and reported individually.

        Returns:
            One PropertyUpdate per attempted field write.

        Raises:
            PersistenceError: the full-record write was rejected
        """
        try:
            self.hubspot.update_property(
                entity_type, entity_id, EXTRACTED_DATA_PROPERTY, record.to_dict()
            )
        except requests.RequestException as e:
            raise PersistenceError(_describe(e)) from e

        log.info("extracted_data_saved", entity_type=entity_type, entity_id=entity_id)
        return self._save_individual_fields(entity_type, entity_id, record)

    def _save_individual_fields(
        self,
        entity_type: str,
        entity_id: str,
        record: ExtractedRecord,
    ) -> list[PropertyUpdate]:
        updates: list[PropertyUpdate] = []
        pending = [
            (prop, getattr(record, attr))
            for attr, prop in FIELD_PROPERTIES.items()
            if getattr(record, attr)
        ]

        for index, (prop, value) in enumerate(pending):
            if index:
                self._sleep(self.update_delay)
            try:
                self.hubspot.update_property(entity_type, entity_id, prop, value)
                updates.append(PropertyUpdate(property=prop, success=True))
            except requests.RequestException as e:
                log.warning("property_update_failed", property=prop, error=str(e))
                updates.append(PropertyUpdate(property=prop, success=False, error=_describe(e)))

        log.info(
            "individual_properties_saved",
            entity_type=entity_type,
            entity_id=entity_id,
            succeeded=sum(1 for u in updates if u.success),
            failed=sum(1 for u in updates if not u.success),
        )
        return updates

    def read_extracted_record(
        self,
        entity_type: str,
        entity_id: str,
    ) -> ExtractedRecord | None:
        """
        Read back the stored extracted_data property.

        Returns:
            The stored record, or None when the property is empty.
        """
        data = self.hubspot.get_record(entity_type, entity_id, [EXTRACTED_DATA_PROPERTY])
        raw = (data.get("properties") or {}).get(EXTRACTED_DATA_PROPERTY)
        if not raw:
            return None
        return ExtractedRecord.from_dict(json.loads(raw))

    def log_error(
        self,
        entity_type: str,
        entity_id: str,
        message: str,
        context: dict[str, Any] | None = None,
    ) -> bool:
        """
        Write a diagnostic entry to the record's error-log property.

        Best-effort: never raises, since it runs from error-handling paths.

        Returns:
            True if the entry was written.
        """
        entry = {
            "error": True,
            "message": message,
            "timestamp": utcnow().isoformat(),
            **(context or {}),
        }
        try:
            self.hubspot.update_property(entity_type, entity_id, ERROR_LOG_PROPERTY, entry)
        except Exception as e:
            log.error(
                "error_log_write_failed",
                entity_type=entity_type,
                entity_id=entity_id,
                error=str(e),
            )
            return False

        log.info("error_log_written", entity_type=entity_type, entity_id=entity_id)
        return True
