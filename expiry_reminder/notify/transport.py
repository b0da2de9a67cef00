"""Mail transports: SMTP relay and a local outbox for dry runs."""
import asyncio
import logging
import smtplib
import ssl
import time
from datetime import date
from email.message import EmailMessage
from email.utils import formataddr
from pathlib import Path
from typing import Optional
import aiofiles
import orjson

from expiry_reminder.config import Config, OUTBOX_DIR, config

logger = logging.getLogger(__name__)


def build_email(sender: str, to: str, subject: str, html: str) -> EmailMessage:
    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = sender
    msg["To"] = to
    msg.set_content("This reminder is best viewed in an HTML capable mail client.")
    msg.add_alternative(html, subtype="html")
    return msg


class SmtpTransport:
    """Sends mail through an SMTP relay."""

    def __init__(self, settings: Config = config):
        self.host = settings.EMAIL_HOST
        self.port = settings.EMAIL_PORT
        self.secure = settings.EMAIL_SECURE
        self.starttls = settings.EMAIL_STARTTLS
        self.username = settings.EMAIL_USER
        self.password = settings.EMAIL_PASS
        self.timeout = settings.EMAIL_TIMEOUT
        self.sender = formataddr((settings.EMAIL_FROM_NAME, settings.sender_address or ""))

    async def send(self, to: str, subject: str, html: str) -> None:
        """Send one message (runs in thread pool since smtplib is blocking)."""
        msg = build_email(self.sender, to, subject, html)
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._send_sync, msg)

    def _send_sync(self, msg: EmailMessage) -> None:
        if self.secure:
            server = smtplib.SMTP_SSL(
                self.host, self.port, timeout=self.timeout, context=ssl.create_default_context()
            )
        else:
            server = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
        with server:
            if not self.secure and self.starttls:
                server.starttls(context=ssl.create_default_context())
            if self.username and self.password:
                server.login(self.username, self.password)
            server.send_message(msg)


class OutboxTransport:
    """Writes messages to a JSONL file instead of sending them."""

    def __init__(self, outbox_dir: Path = OUTBOX_DIR, run_date: Optional[date] = None):
        self.outbox_dir = outbox_dir
        self.outbox_dir.mkdir(parents=True, exist_ok=True)
        self.run_date = run_date or date.today()

    @property
    def outbox_file(self) -> Path:
        return self.outbox_dir / f"{self.run_date.isoformat()}.jsonl"

    async def send(self, to: str, subject: str, html: str) -> None:
        line = orjson.dumps(
            {"ts": time.time(), "to": to, "subject": subject, "html": html}
        ) + b"\n"
        async with aiofiles.open(self.outbox_file, "ab") as f:
            await f.write(line)
        logger.info(f"[DRY-RUN] Wrote message for {to} to {self.outbox_file}")

    async def read_messages(self) -> list[dict]:
        if not self.outbox_file.exists():
            return []
        messages = []
        async with aiofiles.open(self.outbox_file, "rb") as f:
            async for line in f:
                if line.strip():
                    messages.append(orjson.loads(line))
        return messages
