"""
SMTP mailer for document reports.
"""

import html
import mimetypes
import smtplib
from email.message import EmailMessage
from email.utils import make_msgid

from docintake.config import settings
from docintake.core.errors import DeliveryError
from docintake.core.logging import get_logger
from docintake.core.models import AttachmentFile

log = get_logger(__name__)

BODY_TEMPLATE = """\
<div style="font-family: Arial, sans-serif; padding: 20px;">
  <h2>{subject}</h2>
  <p>{message}</p>
  <p>Attachments: {count}</p>
  <small>Automated message from Document Analysis System</small>
</div>
"""


def render_body(subject: str, message: str, attachment_count: int) -> str:
    """Render the HTML body for a report message."""
    return BODY_TEMPLATE.format(
        subject=html.escape(subject),
        message=html.escape(message),
        count=attachment_count,
    )


class Mailer:
    """Sends HTML emails with file attachments over SMTP."""

    def __init__(
        self,
        host: str | None = None,
        port: int | None = None,
        user: str | None = None,
        password: str | None = None,
        use_ssl: bool | None = None,
        sender: str | None = None,
        timeout: float = 60.0,
    ):
        self.host = host or settings.smtp_host
        self.port = port or settings.smtp_port
        self.user = user or settings.smtp_user
        self.password = password or settings.smtp_password
        self.use_ssl = use_ssl if use_ssl is not None else settings.smtp_use_ssl
        self.sender = sender or settings.sender_address
        self.timeout = timeout

    @property
    def enabled(self) -> bool:
        """Check if SMTP is configured."""
        return bool(self.host and self.user and self.password)

    def build_message(
        self,
        to: str,
        subject: str,
        html_body: str,
        attachments: list[AttachmentFile],
    ) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = f'"Document Analysis" <{self.sender}>'
        msg["To"] = to
        msg["Subject"] = subject
        msg["Message-ID"] = make_msgid(domain=self.sender.split("@")[-1] or None)
        msg.set_content("This message requires an HTML-capable mail client.")
        msg.add_alternative(html_body, subtype="html")

        for attachment in attachments:
            content_type = mimetypes.guess_type(attachment.filename)[0] or "application/octet-stream"
            maintype, subtype = content_type.split("/", 1)
            with open(attachment.local_path, "rb") as fh:
                msg.add_attachment(
                    fh.read(),
                    maintype=maintype,
                    subtype=subtype,
                    filename=attachment.filename,
                )
        return msg

    def send(
        self,
        to: str,
        subject: str,
        html_body: str,
        attachments: list[AttachmentFile] | None = None,
    ) -> str:
        """
        Send one message.

        Returns:
            The Message-ID of the sent message.

        Raises:
            DeliveryError: SMTP not configured, attachment unreadable or send failed
        """
        if not self.enabled:
            raise DeliveryError("Email configuration missing")

        try:
            msg = self.build_message(to, subject, html_body, attachments or [])
        except OSError as e:
            raise DeliveryError(f"Could not read attachment: {e}") from e

        try:
            if self.use_ssl:
                with smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout) as s:
                    s.login(self.user, self.password)
                    s.send_message(msg)
            else:
                with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as s:
                    s.starttls()
                    s.login(self.user, self.password)
                    s.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            log.error("email_send_failed", to=to, subject=subject, error=str(e))
            raise DeliveryError(f"Failed to send email: {e}") from e

        log.info(
            "email_sent",
            to=to,
            subject=subject,
            attachments=len(attachments or []),
            message_id=msg["Message-ID"],
        )
        return msg["Message-ID"]
