"""SMTP relay transport with a pooled connection and a send-rate limit."""

from __future__ import annotations

import asyncio
import logging
import smtplib
import time
import uuid
from email.message import EmailMessage as MimeMessage
from email.utils import formataddr

from finchat.mail.base import EmailMessage, MailTransport, TransportResult

LOGGER = logging.getLogger(__name__)

DEFAULT_RATE_LIMIT_PER_SECOND = 14


class SmtpTransport(MailTransport):
    """STARTTLS relay; one connection is reused across sends and reopened on error."""

    name = "smtp"

    def __init__(
        self,
        host: str,
        port: int,
        user: str,
        password: str,
        from_address: str,
        from_name: str,
        rate_limit_per_second: int = DEFAULT_RATE_LIMIT_PER_SECOND,
        timeout_seconds: float = 30.0,
    ) -> None:
        self._host = host
        self._port = port
        self._user = user
        self._password = password
        self._from_address = from_address
        self._from_name = from_name
        self._min_interval = 1.0 / rate_limit_per_second if rate_limit_per_second > 0 else 0.0
        self._timeout_seconds = timeout_seconds
        self._connection: smtplib.SMTP | None = None
        self._last_sent_at = 0.0
        self._lock = asyncio.Lock()

    async def send(self, message: EmailMessage) -> TransportResult:
        if not self._user or not self._password:
            error = "EMAIL_USER and EMAIL_PASSWORD must be set in environment variables"
            LOGGER.error("[Email] SMTP failed: %s", error)
            return TransportResult(success=False, error=error)

        try:
            mime = self.build_mime(message)
        except ValueError as exc:
            # Header values with CR/LF are rejected by the email policy.
            LOGGER.error("[Email] SMTP failed: invalid message: %s", exc)
            return TransportResult(success=False, error=f"Invalid message: {exc}")

        async with self._lock:
            await self._throttle()
            try:
                await asyncio.to_thread(self._deliver, mime)
            except (smtplib.SMTPException, OSError) as exc:
                LOGGER.error("[Email] SMTP failed: %s", exc)
                await asyncio.to_thread(self._drop_connection)
                return TransportResult(success=False, error=str(exc) or "Unknown SMTP error")
            finally:
                self._last_sent_at = time.monotonic()

        LOGGER.info("[Email] SMTP message sent successfully: %s", mime["Message-ID"])
        return TransportResult(success=True, message_id=mime["Message-ID"])

    async def close(self) -> None:
        async with self._lock:
            await asyncio.to_thread(self._drop_connection, True)

    def build_mime(self, message: EmailMessage) -> MimeMessage:
        domain = self._from_address.rpartition("@")[2] or "localhost"
        mime = MimeMessage()
        mime["From"] = formataddr((self._from_name, self._from_address))
        mime["To"] = message.to
        mime["Subject"] = message.subject
        mime["Message-ID"] = f"<{int(time.time() * 1000)}.{uuid.uuid4().hex[:9]}@{domain}>"
        mime["Reply-To"] = self._from_address
        mime["Return-Path"] = self._from_address
        mime["X-Mailer"] = "Waiveer Platform v1.0"
        mime["X-Priority"] = "3"
        mime["X-MSMail-Priority"] = "Normal"
        mime["Importance"] = "Normal"
        mime["List-Unsubscribe"] = f"<mailto:{self._from_address}?subject=unsubscribe>"
        mime["List-Unsubscribe-Post"] = "List-Unsubscribe=One-Click"
        mime["Organization"] = self._from_name.split()[0] if self._from_name else ""
        mime["X-Auto-Response-Suppress"] = "OOF, DR, RN, NRN, AutoReply"
        mime.set_content(message.text or "")
        mime.add_alternative(message.html, subtype="html")
        return mime

    async def _throttle(self) -> None:
        wait = self._last_sent_at + self._min_interval - time.monotonic()
        if wait > 0:
            await asyncio.sleep(wait)

    def _deliver(self, mime: MimeMessage) -> None:
        if self._connection is not None:
            try:
                self._connection.send_message(mime)
                return
            except smtplib.SMTPServerDisconnected:
                # Pooled connection went stale; the message was not accepted.
                self._connection = None
        self._connection = self._connect()
        self._connection.send_message(mime)

    def _connect(self) -> smtplib.SMTP:
        connection = smtplib.SMTP(self._host, self._port, timeout=self._timeout_seconds)
        connection.starttls()
        connection.login(self._user, self._password)
        return connection

    def _drop_connection(self, graceful: bool = False) -> None:
        connection, self._connection = self._connection, None
        if connection is None:
            return
        try:
            if graceful:
                connection.quit()
            else:
                connection.close()
        except (smtplib.SMTPException, OSError) as exc:
            LOGGER.debug("Ignoring error while closing SMTP connection: %s", exc)
