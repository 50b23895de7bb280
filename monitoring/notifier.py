"""
============================================================================
UPTIME WATCH - EMAIL NOTIFIER
============================================================================
Notification sink that mails the operator when a target goes down or
comes back up. Each message carries a plain-text and an HTML body.

smtplib is blocking, so delivery runs in the default executor and never
stalls the event loop. Delivery failures are logged and reported as
``False``; nothing here raises into the monitoring path.
============================================================================
"""

import asyncio
import smtplib
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Any, Optional

from config.settings import NotificationSettings
from utils.helpers import StringHelper, TimeHelper
from utils.logger import get_logger


logger = get_logger("EmailNotifier")


_BASE_STYLE = """
      body { font-family: Arial, sans-serif; line-height: 1.6; color: #333; }
      .container { max-width: 600px; margin: 0 auto; padding: 20px; }
      .header { background: %(accent)s; color: white; padding: 20px; border-radius: 8px 8px 0 0; }
      .content { background: #f9fafb; padding: 20px; border-radius: 0 0 8px 8px; }
      .alert { background: #fef2f2; border: 1px solid #fecaca; padding: 15px; border-radius: 6px; margin: 15px 0; }
      .details { background: white; padding: 15px; border-radius: 6px; margin: 15px 0; }
      .status { color: %(accent)s; font-weight: bold; }
"""

DOWN_ACCENT = "#dc2626"
UP_ACCENT = "#059669"


class EmailNotifier:
    """
    SMTP notification sink.

    Parameters
    ----------
    settings : NotificationSettings
        SMTP host, port, TLS mode, credentials and the sender/recipient.
    """

    def __init__(self, settings: Optional[NotificationSettings] = None):
        self.settings = settings or NotificationSettings()
        self.sent_count = 0
        self.failed_count = 0

        if self.settings.is_configured:
            logger.info(
                f"EmailNotifier ready: {self.settings.host}:{self.settings.port} "
                f"→ {self.settings.email_to}"
            )
        else:
            logger.warning("EmailNotifier not configured (EMAIL_TO or EMAIL_FROM missing), alerts will only be logged")

    # ------------------------------------------------------------------
    # PUBLIC API
    # ------------------------------------------------------------------

    async def notify_down(self, target: Any, error: Optional[str]) -> bool:
        """Send the down alert for *target*. Returns True when delivered."""
        now = TimeHelper.get_utc_now()
        message = self.build_message(
            subject=f"🚨 App Down Alert: {target.name}",
            text=self.render_down_text(target, error, now),
            html=self.render_down_html(target, error, now),
        )
        delivered = await self._deliver(message)
        if delivered:
            logger.info(f"Down notification sent for {target.name} ({target.url})")
        return delivered

    async def notify_up(self, target: Any) -> bool:
        """Send the recovery notice for *target*. Returns True when delivered."""
        now = TimeHelper.get_utc_now()
        message = self.build_message(
            subject=f"✅ App Back Online: {target.name}",
            text=self.render_up_text(target, now),
            html=self.render_up_html(target, now),
        )
        delivered = await self._deliver(message)
        if delivered:
            logger.info(f"Up notification sent for {target.name} ({target.url})")
        return delivered

    async def verify_connection(self) -> bool:
        """Connect, negotiate TLS and authenticate without sending anything."""
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self._verify_sync)
            logger.info("✓ SMTP connection verified")
            return True
        except Exception as e:
            logger.error(f"Email service connection failed: {e}")
            return False

    # ------------------------------------------------------------------
    # DELIVERY
    # ------------------------------------------------------------------

    async def _deliver(self, message: MIMEMultipart) -> bool:
        if not self.settings.is_configured:
            logger.info(f"[ALERT] (email disabled) {message['Subject']}")
            return False

        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self._send_sync, message)
        except Exception as e:
            self.failed_count += 1
            logger.error(f"Failed to send email notification '{message['Subject']}': {e}")
            return False

        self.sent_count += 1
        return True

    def _open(self) -> smtplib.SMTP:
        s = self.settings
        if s.secure:
            server = smtplib.SMTP_SSL(s.host, s.port, timeout=s.timeout)
        else:
            server = smtplib.SMTP(s.host, s.port, timeout=s.timeout)

        try:
            if not s.secure:
                server.ehlo()
                if server.has_extn("starttls"):
                    server.starttls()
                    server.ehlo()

            password = s.password.get_secret_value()
            if s.user and password:
                server.login(s.user, password)
        except Exception:
            server.close()
            raise
        return server

    def _send_sync(self, message: MIMEMultipart) -> None:
        with self._open() as server:
            server.send_message(message)

    def _verify_sync(self) -> None:
        with self._open() as server:
            server.noop()

    # ------------------------------------------------------------------
    # MESSAGE RENDERING
    # ------------------------------------------------------------------

    def build_message(self, subject: str, text: str, html: str) -> MIMEMultipart:
        message = MIMEMultipart("alternative")
        message["From"] = self.settings.email_from
        message["To"] = self.settings.email_to
        message["Subject"] = subject
        message.attach(MIMEText(text, "plain", "utf-8"))
        message.attach(MIMEText(html, "html", "utf-8"))
        return message

    @staticmethod
    def render_down_text(target: Any, error: Optional[str], when: datetime) -> str:
        return (
            "🚨 APP DOWN ALERT\n\n"
            "The following application is currently DOWN:\n\n"
            f"Name: {target.name}\n"
            f"URL: {target.url}\n"
            f"Last Check: {TimeHelper.format_datetime(when)}\n\n"
            "Error Details:\n"
            f"{error or 'Unknown error'}\n\n"
            "Please investigate the issue as soon as possible.\n"
        )

    @staticmethod
    def render_up_text(target: Any, when: datetime) -> str:
        return (
            "✅ APP BACK ONLINE\n\n"
            "The following application is now BACK ONLINE:\n\n"
            f"Name: {target.name}\n"
            f"URL: {target.url}\n"
            f"Recovery Time: {TimeHelper.format_datetime(when)}\n\n"
            "The application has recovered and is responding normally.\n"
        )

    @staticmethod
    def render_down_html(target: Any, error: Optional[str], when: datetime) -> str:
        name = StringHelper.escape_html(target.name)
        url = StringHelper.escape_html(target.url)
        error = StringHelper.escape_html(error or "Unknown error")
        return f"""<!DOCTYPE html>
<html>
  <head>
    <style>{_BASE_STYLE % {"accent": DOWN_ACCENT}}</style>
  </head>
  <body>
    <div class="container">
      <div class="header"><h1>🚨 App Down Alert</h1></div>
      <div class="content">
        <p>The following application is currently <span class="status">DOWN</span>:</p>
        <div class="details">
          <h3>{name}</h3>
          <p><strong>URL:</strong> <a href="{url}">{url}</a></p>
          <p><strong>Last Check:</strong> {TimeHelper.format_datetime(when)}</p>
        </div>
        <div class="alert">
          <h4>Error Details:</h4>
          <p>{error}</p>
        </div>
        <p>Please investigate the issue as soon as possible.</p>
      </div>
    </div>
  </body>
</html>
"""

    @staticmethod
    def render_up_html(target: Any, when: datetime) -> str:
        name = StringHelper.escape_html(target.name)
        url = StringHelper.escape_html(target.url)
        return f"""<!DOCTYPE html>
<html>
  <head>
    <style>{_BASE_STYLE % {"accent": UP_ACCENT}}</style>
  </head>
  <body>
    <div class="container">
      <div class="header"><h1>✅ App Back Online</h1></div>
      <div class="content">
        <p>The following application is now <span class="status">BACK ONLINE</span>:</p>
        <div class="details">
          <h3>{name}</h3>
          <p><strong>URL:</strong> <a href="{url}">{url}</a></p>
          <p><strong>Recovery Time:</strong> {TimeHelper.format_datetime(when)}</p>
        </div>
        <p>The application has recovered and is responding normally.</p>
      </div>
    </div>
  </body>
</html>
"""
