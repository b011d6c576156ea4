"""
Centralized configuration using Pydantic Settings.

All environment variables are loaded and validated here.
"""

import os
import tempfile

from pydantic_settings import BaseSettings, SettingsConfigDict

from docintake.core.errors import ConfigurationError

MB = 1024 * 1024


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Gemini
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.0-flash"
    gemini_max_output_tokens: int = 1000

    # HubSpot
    hubspot_access_token: str = ""
    hubspot_base_url: str = "https://api.hubapi.com"
    hubspot_timeout_seconds: float = 30.0

    # SMTP
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    smtp_use_ssl: bool = False
    email_from: str = ""
    email_send_to: str = ""
    email_subject: str = "Document Analysis Report"

    # Attachments
    max_attachment_batch_bytes: int = 20 * MB
    email_batch_delay_seconds: float = 2.0

    # Downloads
    download_timeout_seconds: float = 30.0
    max_download_bytes: int = 10 * MB
    temp_dir: str = os.path.join(tempfile.gettempdir(), "docintake")

    # Queue
    queue_max_attempts: int = 3
    queue_retention: int = 100

    # CRM writes
    property_update_delay_seconds: float = 0.1

    # Webhook routing
    report_trigger_property: str = "send_attachment"
    report_trigger_subscription: str = "contact.propertyChange"

    # Logging
    log_level: str = "INFO"
    json_logs: bool = True  # False for colored dev output

    @property
    def sender_address(self) -> str:
        return self.email_from or self.smtp_user

    def missing_required(self) -> list[str]:
        """Names of required environment variables that are not set."""
        required = {
            "GEMINI_API_KEY": self.gemini_api_key,
            "HUBSPOT_ACCESS_TOKEN": self.hubspot_access_token,
            "SMTP_HOST": self.smtp_host,
            "SMTP_USER": self.smtp_user,
            "SMTP_PASSWORD": self.smtp_password,
            "EMAIL_SEND_TO": self.email_send_to,
        }
        return [name for name, value in required.items() if not value]

    def validate_required(self) -> None:
        """Raise ConfigurationError if any required credential is missing."""
        missing = self.missing_required()
        if missing:
            raise ConfigurationError(
                f"Missing required environment variables: {', '.join(missing)}"
            )


# Global settings instance
settings = Settings()
