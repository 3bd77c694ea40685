"""
Mail transport for website form submissions.

``SmtpMailer`` talks to the configured SMTP server through aiosmtplib;
``InMemoryMailer`` records messages for development and tests.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from email.message import EmailMessage
from email.utils import formatdate, make_msgid
from typing import Optional, Protocol

import aiosmtplib

from cms_backend.env import DEFAULT_SMTP_PORT, EmailConfig

logger = logging.getLogger(__name__)

IMPLICIT_TLS_PORT = 465
PLAIN_SMTP_PORT = 25

SMTP_ERROR_MESSAGES = {
    "EAUTH": "SMTP authentication failed. Please check your SMTP_USER and SMTP_PASS.",
    "ECONNECTION": "Could not connect to SMTP server. Please check your SMTP_HOST and SMTP_PORT.",
    "ETIMEDOUT": "SMTP connection timed out. Please check your network connection and SMTP settings.",
}


@dataclass
class SendInfo:
    message_id: Optional[str]
    response: str = ""
    rejected: list[str] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "messageId": self.message_id,
            "response": self.response,
            "rejected": list(self.rejected),
        }


def _message_id(message: EmailMessage) -> Optional[str]:
    value = message["Message-ID"]
    return str(value) if value is not None else None


class Mailer(Protocol):
    """What the send-email route needs from a mail transport."""

    async def verify(self) -> None:
        ...

    async def send(self, message: EmailMessage) -> SendInfo:
        ...


def build_message(
    *,
    sender: str,
    recipient: str,
    subject: str,
    text: Optional[str] = None,
    html: Optional[str] = None,
) -> EmailMessage:
    message = EmailMessage()
    message["From"] = sender
    message["To"] = recipient
    message["Subject"] = subject
    message["Date"] = formatdate(localtime=True)
    message["Message-ID"] = make_msgid()
    if text:
        message.set_content(text)
        if html:
            message.add_alternative(html, subtype="html")
    elif html:
        message.set_content(html, subtype="html")
    else:
        message.set_content("")
    return message


def classify_smtp_error(exc: BaseException) -> Optional[str]:
    """Map a transport exception to a short error code, when it is a known kind."""
    if isinstance(exc, aiosmtplib.SMTPAuthenticationError):
        return "EAUTH"
    # SMTPConnectTimeoutError is also an SMTPConnectError; timeouts win.
    if isinstance(exc, (aiosmtplib.SMTPTimeoutError, asyncio.TimeoutError)):
        return "ETIMEDOUT"
    if isinstance(
        exc,
        (aiosmtplib.SMTPConnectError, aiosmtplib.SMTPServerDisconnected, ConnectionError),
    ):
        return "ECONNECTION"
    return None


def describe_send_error(exc: BaseException) -> dict:
    code = classify_smtp_error(exc)
    message = SMTP_ERROR_MESSAGES.get(code) if code else None
    response_code = getattr(exc, "code", None)
    return {
        "error": message or str(exc) or exc.__class__.__name__,
        "details": code or response_code or "Unknown error",
        "code": code,
    }


@dataclass
class SmtpMailer:
    """SMTP transport built from the validated email configuration."""

    config: EmailConfig

    @property
    def port(self) -> int:
        return self.config.smtp_port or DEFAULT_SMTP_PORT

    def _client(self) -> aiosmtplib.SMTP:
        implicit_tls = self.port == IMPLICIT_TLS_PORT
        # STARTTLS is mandatory except on implicit TLS and plain port 25.
        require_starttls = self.port not in (IMPLICIT_TLS_PORT, PLAIN_SMTP_PORT)
        return aiosmtplib.SMTP(
            hostname=self.config.smtp_host,
            port=self.port,
            use_tls=implicit_tls,
            start_tls=True if require_starttls else None,
            validate_certs=False,
            timeout=self.config.timeout_seconds,
        )

    async def verify(self) -> None:
        smtp = self._client()
        async with smtp:
            await smtp.login(self.config.smtp_user, self.config.smtp_pass)

    async def send(self, message: EmailMessage) -> SendInfo:
        smtp = self._client()
        async with smtp:
            await smtp.login(self.config.smtp_user, self.config.smtp_pass)
            errors, response = await smtp.send_message(message)
        return SendInfo(
            message_id=_message_id(message),
            response=response,
            rejected=sorted(errors),
        )


@dataclass
class InMemoryMailer:
    """Test double that keeps sent messages in a list."""

    sent: list[EmailMessage] = field(default_factory=list)
    verify_error: Optional[BaseException] = None
    send_error: Optional[BaseException] = None

    async def verify(self) -> None:
        if self.verify_error is not None:
            raise self.verify_error

    async def send(self, message: EmailMessage) -> SendInfo:
        if self.send_error is not None:
            raise self.send_error
        self.sent.append(message)
        return SendInfo(message_id=_message_id(message), response="250 OK")
