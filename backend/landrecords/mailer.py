from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage
from typing import Optional, Tuple

from fastapi import Request

from .config import Settings, settings
from .metrics import counter_inc

logger = logging.getLogger(__name__)


class Mailer:
    """Transactional mail over SMTP (STARTTLS by default)."""

    def __init__(
        self,
        host: Optional[str],
        port: int = 587,
        username: Optional[str] = None,
        password: Optional[str] = None,
        sender: Optional[str] = None,
        use_tls: bool = True,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.sender = sender or username
        self.use_tls = use_tls

    @classmethod
    def from_settings(cls, cfg: Settings = settings) -> "Mailer":
        return cls(
            host=cfg.smtp_host,
            port=cfg.smtp_port,
            username=cfg.smtp_username,
            password=cfg.smtp_password,
            sender=cfg.smtp_from,
            use_tls=cfg.smtp_use_tls,
        )

    @property
    def configured(self) -> bool:
        return bool(self.host and self.sender)

    def send_mail(self, to: str, subject: str, body: str, html: Optional[str] = None) -> Tuple[bool, Optional[str]]:
        if not self.configured:
            return False, "Email is not configured"
        try:
            msg = EmailMessage()
            msg["Subject"] = subject
            msg["From"] = self.sender
            msg["To"] = to
            msg.set_content(body)
            if html:
                msg.add_alternative(html, subtype="html")
            server = smtplib.SMTP(self.host, int(self.port or 587), timeout=30)
            try:
                if self.use_tls:
                    server.starttls()
                if self.username and self.password:
                    server.login(self.username, self.password)
                server.send_message(msg)
            finally:
                try:
                    server.quit()
                except smtplib.SMTPException:
                    pass
            counter_inc("notifications_email_sent_total")
            return True, None
        except (smtplib.SMTPException, OSError) as e:
            counter_inc("notifications_email_failed_total")
            logger.warning("Sending mail to %s failed: %s", to, e)
            return False, str(e)


def get_mailer(request: Request) -> Mailer:
    return request.app.state.mailer
