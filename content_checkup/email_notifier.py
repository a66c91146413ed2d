"""Mail transport for reminder emails."""

import logging
import smtplib
from abc import ABC, abstractmethod
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from .config import SMTPConfig

logger = logging.getLogger(__name__)


class Mailer(ABC):
    """Abstract base class for mail transports."""

    @abstractmethod
    def send(self, to_email: str, subject: str, body: str) -> bool:
        """
        Send an HTML email.

        Args:
            to_email: Recipient email address.
            subject: Email subject line.
            body: HTML message body.

        Returns:
            True if the transport accepted the message, False otherwise.
        """
        pass


class SMTPMailer(Mailer):
    """Send mail through an SMTP server."""

    def __init__(self, config: SMTPConfig):
        self.config = config

    def _connect(self) -> smtplib.SMTP:
        if self.config.port == 465:
            # Implicit SSL
            return smtplib.SMTP_SSL(self.config.host, self.config.port, timeout=self.config.timeout_seconds)
        server = smtplib.SMTP(self.config.host, self.config.port, timeout=self.config.timeout_seconds)
        if self.config.use_tls:
            try:
                server.starttls()
            except (smtplib.SMTPException, OSError):
                server.close()
                raise
        return server

    def send(self, to_email: str, subject: str, body: str) -> bool:
        msg = MIMEMultipart()
        msg['From'] = self.config.from_email
        msg['To'] = to_email
        msg['Subject'] = subject
        msg.attach(MIMEText(body, 'html'))

        try:
            logger.debug(f"Connecting to SMTP server: {self.config.host}:{self.config.port}")
            server = self._connect()
            try:
                if self.config.username and self.config.password:
                    server.login(self.config.username, self.config.password)
                server.send_message(msg)
            finally:
                server.quit()
        except smtplib.SMTPAuthenticationError as e:
            logger.error(
                f"SMTP authentication failed for {self.config.username}. "
                f"Check SMTP_USERNAME and SMTP_PASSWORD (Gmail needs an App Password). "
                f"Error details: {e}"
            )
            return False
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email to {to_email}: {e}")
            return False

        logger.info(f"Email sent successfully to {to_email}")
        logger.debug(f"Subject: {subject}")
        return True
