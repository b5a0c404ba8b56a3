"""Deliver formatted emails via SMTP.

Uses stdlib ``smtplib`` and ``email.mime`` to build and submit messages
over a single long-lived ``SMTP_SSL`` connection.  The connection is
opened and authenticated once (``Mailer.verify`` at startup) and reused
for every send; a dropped connection is re-opened on the next send.

In dry-run mode, or when no credentials are configured, ``Mailer.send``
only logs what it would have sent and reports success.  Each request
gets exactly one submission attempt: transport failures are raised as
``DispatchError`` and never retried here.
"""

from __future__ import annotations

import logging
import smtplib
import threading
from collections.abc import Callable
from email.mime.application import MIMEApplication
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr, formatdate, make_msgid

from attendance_mailer.config import Settings
from attendance_mailer.exceptions import DispatchError
from attendance_mailer.models import DispatchResult, OutgoingMessage

logger = logging.getLogger(__name__)

SMTPFactory = Callable[..., smtplib.SMTP]


class Mailer:
    """SMTP dispatcher shared by all request handlers.

    Args:
        settings: Service settings (relay, credentials, dry-run flag).
        smtp_factory: Callable returning an ``smtplib.SMTP``-like object
            when called as ``smtp_factory(host, port, timeout=...)``.
            Tests pass a fake here.
        timeout: Socket timeout in seconds for the relay connection.
    """

    def __init__(
        self,
        settings: Settings,
        smtp_factory: SMTPFactory = smtplib.SMTP_SSL,
        timeout: float = 30.0,
    ) -> None:
        self.settings = settings
        self._smtp_factory = smtp_factory
        self._timeout = timeout
        self._conn: smtplib.SMTP | None = None
        # smtplib connections are not thread safe; sends run in a thread pool.
        self._lock = threading.Lock()

    @property
    def dry_run(self) -> bool:
        return self.settings.dry_run or not self.settings.has_credentials

    @property
    def sender(self) -> str:
        return formataddr((self.settings.school_name, self.settings.smtp_user))

    # ------------------------------------------------------------------
    # Connection management
    # ------------------------------------------------------------------

    def _open(self) -> smtplib.SMTP:
        conn = self._smtp_factory(
            self.settings.smtp_host,
            self.settings.smtp_port,
            timeout=self._timeout,
        )
        try:
            conn.login(self.settings.smtp_user, self.settings.smtp_password)
        except Exception:
            conn.close()
            raise
        return conn

    def _is_alive(self, conn: smtplib.SMTP) -> bool:
        try:
            status, _ = conn.noop()
        except (smtplib.SMTPException, OSError):
            return False
        return status == 250

    def _connection(self) -> smtplib.SMTP:
        """Return the shared connection, re-opening it if it was dropped."""
        if self._conn is not None and not self._is_alive(self._conn):
            logger.info("SMTP connection to %s dropped; reconnecting", self.settings.smtp_host)
            self._discard()
        if self._conn is None:
            self._conn = self._open()
        return self._conn

    def _discard(self) -> None:
        conn, self._conn = self._conn, None
        if conn is None:
            return
        try:
            conn.close()
        except OSError as exc:
            logger.debug("Ignoring error while closing SMTP connection: %s", exc)

    def verify(self) -> bool:
        """Open and authenticate the relay connection once.

        Returns:
            ``True`` when the relay accepted the credentials (or in dry-run
            mode), ``False`` otherwise.  Never raises; a failed check leaves
            the next ``send`` to try again.
        """
        if self.dry_run:
            logger.info("Dry-run mode: SMTP verification skipped")
            return True

        with self._lock:
            try:
                self._connection()
            except smtplib.SMTPAuthenticationError:
                logger.warning(
                    "SMTP verify failed: authentication rejected. "
                    "Check SMTP_USER and SMTP_PASS."
                )
                return False
            except (smtplib.SMTPException, OSError) as exc:
                logger.warning("SMTP verify failed: %s", exc)
                self._discard()
                return False

        logger.info("SMTP ready (%s:%d)", self.settings.smtp_host, self.settings.smtp_port)
        return True

    def close(self) -> None:
        """Quit the relay connection if one is open."""
        with self._lock:
            conn, self._conn = self._conn, None
            if conn is None:
                return
            try:
                conn.quit()
            except (smtplib.SMTPException, OSError) as exc:
                logger.debug("SMTP quit failed: %s", exc)
                conn.close()

    # ------------------------------------------------------------------
    # Sending
    # ------------------------------------------------------------------

    def build_mime(self, message: OutgoingMessage) -> MIMEMultipart:
        """Build the MIME tree for *message*.

        Text and HTML go into a ``multipart/alternative`` part; when there
        is an attachment that part is wrapped in ``multipart/mixed``.
        """
        alternative = MIMEMultipart("alternative")
        alternative.attach(MIMEText(message.text_body, "plain", "utf-8"))
        alternative.attach(MIMEText(message.html_body, "html", "utf-8"))

        if message.attachment is None:
            msg = alternative
        else:
            msg = MIMEMultipart("mixed")
            msg.attach(alternative)
            part = MIMEApplication(message.attachment.read_bytes(), _subtype="pdf")
            part.add_header(
                "Content-Disposition",
                "attachment",
                filename=message.attachment.name,
            )
            msg.attach(part)

        msg["Subject"] = message.subject
        msg["From"] = self.sender
        msg["To"] = message.recipient
        msg["Date"] = formatdate(localtime=True)
        msg["Message-ID"] = make_msgid()
        return msg

    def send(self, message: OutgoingMessage) -> DispatchResult:
        """Send *message*, or pretend to in dry-run mode.

        Raises:
            DispatchError: The relay could not be reached, refused the
                login, or rejected the message.
        """
        if self.dry_run:
            if message.attachment is not None:
                logger.info(
                    "[DRY_RUN] Would email PDF to: %s | %s | file: %s",
                    message.recipient, message.subject, message.attachment,
                )
            else:
                logger.info(
                    "[DRY_RUN] Would send to: %s | %s",
                    message.recipient, message.subject,
                )
            return DispatchResult(sent=True)

        try:
            mime = self.build_mime(message)
        except OSError as exc:
            raise DispatchError(f"Could not read attachment: {exc}") from exc

        with self._lock:
            try:
                conn = self._connection()
                conn.send_message(mime)
            except smtplib.SMTPAuthenticationError as exc:
                self._discard()
                raise DispatchError("SMTP authentication failed") from exc
            except (smtplib.SMTPException, OSError) as exc:
                self._discard()
                raise DispatchError(f"SMTP error while sending: {exc}") from exc

        logger.info("Email sent to %s: %s", message.recipient, mime["Message-ID"])
        return DispatchResult(sent=True, message_id=mime["Message-ID"])
