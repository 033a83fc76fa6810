"""
Outbound email.
"""

import logging
import smtplib
from email.message import EmailMessage
from email.utils import formataddr
from typing import Optional, Protocol


logger = logging.getLogger(__name__)


class Mailer(Protocol):
    def send(self, to_address: str, subject: str, body_html: str) -> None:
        ...


class SMTPMailer:
    """Sends HTML email through an SMTP relay."""

    def __init__(
        self,
        host: str,
        port: int,
        from_email: str,
        from_name: Optional[str] = None,
        user: Optional[str] = None,
        password: Optional[str] = None,
        use_tls: bool = True,
        timeout: float = 30.0
    ):
        self.host = host
        self.port = port
        self.from_email = from_email
        self.from_name = from_name
        self.user = user
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout

    def send(self, to_address: str, subject: str, body_html: str) -> None:
        message = EmailMessage()
        message["From"] = formataddr((self.from_name or "", self.from_email))
        message["To"] = to_address
        message["Subject"] = subject
        message.set_content("This message requires an HTML capable mail client.")
        message.add_alternative(body_html, subtype="html")

        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
            if self.use_tls:
                smtp.starttls()
            if self.user and self.password:
                smtp.login(self.user, self.password)
            smtp.send_message(message)
        logger.info(f"Sent '{subject}' email to {to_address}")


class DisabledMailer:
    """Used when SMTP is not configured; every send fails."""

    def send(self, to_address: str, subject: str, body_html: str) -> None:
        raise RuntimeError("Email delivery is not configured")
