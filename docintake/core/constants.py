"""
HubSpot object types and property names used by the pipeline.
"""

# Object type ids
CONTACT = "0-1"
COMPANY = "0-2"
DEAL = "0-3"
TICKET = "0-5"
SERVICE = "2-52156116"

# Properties
EXTRACTED_DATA_PROPERTY = "extracted_data"
ERROR_LOG_PROPERTY = "extracted_data_error_log"
FILE_ID_PROPERTY = "file_id"

# ExtractedRecord attribute -> HubSpot property.
# "full_name" is derived from first_name + last_name.
FIELD_PROPERTIES: dict[str, str] = {
    "full_name": "extracted_full_name",
    "street_address": "extracted_address",
    "date_of_birth": "extracted_dob",
    "nationality": "extracted_nationality",
    "permit_expiry_date": "extracted_work_permit_date",
    "permit_type": "extracted_work_permit_type",
}

IMAGE_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".gif", ".webp", ".bmp"})
DOCUMENT_EXTENSIONS = frozenset({".pdf"})

SUCCESS_MESSAGE = "Document analyzed and HubSpot updated successfully"
