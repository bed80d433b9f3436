import asyncio
import logging
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import List, Optional, Set

from aiosmtplib import send
from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail

from config import settings

logger = logging.getLogger(__name__)


@dataclass
class MailMessage:
    to: str
    subject: str
    text: str
    html: Optional[str] = None
    from_address: Optional[str] = None


class SendGridBackend:
    name = "sendgrid"

    def __init__(self, api_key: str, default_from: str):
        self.client = SendGridAPIClient(api_key)
        self.default_from = default_from

    async def send(self, message: MailMessage):
        mail = Mail(
            from_email=message.from_address or self.default_from,
            to_emails=message.to,
            subject=message.subject,
            plain_text_content=message.text,
            html_content=message.html,
        )
        # the sendgrid client is blocking
        await asyncio.to_thread(self.client.send, mail)


class SMTPBackend:
    name = "smtp"

    def __init__(self, hostname: str, port: int, username: Optional[str], password: Optional[str],
                 use_tls: bool = True, default_from: Optional[str] = None):
        self.hostname = hostname
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.default_from = default_from or username

    def build_mime(self, message: MailMessage):
        if message.html:
            mime = MIMEMultipart("alternative")
            mime.attach(MIMEText(message.text, "plain"))
            mime.attach(MIMEText(message.html, "html"))
        else:
            mime = MIMEText(message.text)
        mime["From"] = message.from_address or self.default_from
        mime["To"] = message.to
        mime["Subject"] = message.subject
        return mime

    async def send(self, message: MailMessage):
        await send(
            self.build_mime(message),
            hostname=self.hostname,
            port=self.port,
            username=self.username,
            password=self.password,
            use_tls=self.use_tls,
            timeout=10,
        )


class Mailer:
    """
    Sends mail through the first backend that succeeds.

    ``dispatch`` is fire-and-forget: the send runs as a detached task whose
    failures are logged and counted, never raised to the caller.
    """

    def __init__(self, backends: List = None):
        self.backends = backends or []
        self.failed_count = 0
        self._tasks: Set[asyncio.Task] = set()

    @property
    def configured(self) -> bool:
        return bool(self.backends)

    async def send(self, message: MailMessage) -> bool:
        if not self.backends:
            logger.info("No mailer configured; skipping email to %s (%s)", message.to, message.subject)
            return False

        for backend in self.backends:
            try:
                await backend.send(message)
                return True
            except Exception:
                logger.exception("%s send error for %s", backend.name, message.to)

        self.failed_count += 1
        return False

    def dispatch(self, message: MailMessage) -> asyncio.Task:
        task = asyncio.create_task(self.send(message))
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task):
        self._tasks.discard(task)
        if task.cancelled():
            return
        if task.exception() is not None:
            self.failed_count += 1
            logger.error("Background email failed", exc_info=task.exception())

    async def drain(self):
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


def build_mailer() -> Mailer:
    backends = []
    if settings.SENDGRID_API_KEY:
        backends.append(SendGridBackend(settings.SENDGRID_API_KEY, settings.MAIL_FROM))
    if settings.SMTP_HOST and settings.SMTP_USER:
        backends.append(SMTPBackend(
            hostname=settings.SMTP_HOST,
            port=settings.SMTP_PORT,
            username=settings.SMTP_USER,
            password=settings.SMTP_USER_PWD,
            use_tls=settings.SMTP_USE_TLS,
            default_from=settings.MAIL_FROM,
        ))
    return Mailer(backends)


mailer = build_mailer()


def get_mailer() -> Mailer:
    return mailer
