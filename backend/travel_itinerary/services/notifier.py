# backend/travel_itinerary/services/notifier.py

"""
Itinerary e-mail notifications.

``EmailNotifier`` composes and sends one message over SMTP and never raises.
``NotificationDispatcher`` runs it on a background worker so the request that
created the itinerary never waits on (or fails because of) mail delivery.
"""

import html
import smtplib
from concurrent.futures import Future, ThreadPoolExecutor
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr
from typing import Callable, Optional

from travel_itinerary.core.config_loader import Settings
from travel_itinerary.core.logger import get_logger
from travel_itinerary.models.itinerary_models import ItineraryRecord

logger = get_logger("notifier")


HTML_TEMPLATE = """\
<!DOCTYPE html>
<html>
<head>
  <style>
    body {{ font-family: Arial, sans-serif; line-height: 1.6; color: #333; }}
    .container {{ max-width: 600px; margin: 0 auto; padding: 20px; }}
    .header {{ background-color: #4CAF50; color: white; padding: 20px; text-align: center; }}
    .details {{ background-color: white; padding: 15px; margin: 15px 0; border-left: 4px solid #4CAF50; }}
    .label {{ font-weight: bold; color: #555; }}
    .footer {{ text-align: center; margin-top: 20px; color: #777; font-size: 12px; }}
  </style>
</head>
<body>
  <div class="container">
    <div class="header"><h1>Itinerary Created Successfully!</h1></div>
    <p>Hi {name},</p>
    <p>Great news! Your travel itinerary has been created successfully.</p>
    <div class="details">
      <div><span class="label">Title:</span> {title}</div>
      <div><span class="label">Destination:</span> {destination}</div>
      <div><span class="label">Start Date:</span> {start}</div>
      <div><span class="label">End Date:</span> {end}</div>
      <div><span class="label">Activities:</span> {activities} planned</div>
    </div>
    <p>You can view and manage your itinerary by logging into your account.</p>
    <p>Happy travels!</p>
    <div class="footer"><p>This is an automated email from {sender}</p></div>
  </div>
</body>
</html>
"""

TEXT_TEMPLATE = """\
Hi {name},

Great news! Your travel itinerary has been created successfully.

Itinerary Details:
- Title: {title}
- Destination: {destination}
- Start Date: {start}
- End Date: {end}
- Activities: {activities} planned

You can view and manage your itinerary by logging into your account.

Happy travels!

---
This is an automated email from {sender}
"""


class EmailNotifier:
    def __init__(self, settings: Settings, smtp_factory: Optional[Callable[..., smtplib.SMTP]] = None):
        self.settings = settings
        if smtp_factory is None:
            smtp_factory = smtplib.SMTP_SSL if settings.SMTP_SECURE else smtplib.SMTP
        self.smtp_factory = smtp_factory

    def is_configured(self) -> bool:
        return bool(self.settings.EMAIL_ENABLED and self.settings.SMTP_HOST and self.settings.SMTP_USER)

    def build_message(self, user_email: str, user_name: str, itinerary: ItineraryRecord) -> MIMEMultipart:
        context = {
            "name": user_name,
            "title": itinerary.title,
            "destination": itinerary.destination,
            "start": itinerary.start_date.strftime("%Y-%m-%d"),
            "end": itinerary.end_date.strftime("%Y-%m-%d"),
            "activities": len(itinerary.activities),
            "sender": self.settings.EMAIL_FROM_NAME,
        }
        markup = {
            k: html.escape(v) if isinstance(v, str) else v for k, v in context.items()
        }

        message = MIMEMultipart("alternative")
        message["Subject"] = f'Your Itinerary "{itinerary.title}" Has Been Created!'
        message["From"] = formataddr((self.settings.EMAIL_FROM_NAME, self.settings.SMTP_USER))
        message["To"] = user_email
        message.attach(MIMEText(TEXT_TEMPLATE.format(**context), "plain"))
        message.attach(MIMEText(HTML_TEMPLATE.format(**markup), "html"))
        return message

    def notify_itinerary_created(self, user_email: str, user_name: str, itinerary: ItineraryRecord) -> bool:
        """Send the creation e-mail. Returns False (never raises) when not sent."""
        if not self.is_configured():
            logger.info("Email not configured, skipping email notification")
            return False

        try:
            message = self.build_message(user_email, user_name, itinerary)
            with self.smtp_factory(self.settings.SMTP_HOST, self.settings.SMTP_PORT, timeout=10) as server:
                if not self.settings.SMTP_SECURE:
                    server.ehlo()
                    if server.has_extn("starttls"):
                        server.starttls()
                        server.ehlo()
                if self.settings.SMTP_PASS:
                    server.login(self.settings.SMTP_USER, self.settings.SMTP_PASS)
                server.sendmail(self.settings.SMTP_USER, [user_email], message.as_string())
            logger.info("Itinerary creation email sent to %s for %s", user_email, itinerary.id)
            return True
        except Exception as exc:
            logger.error("Error sending itinerary creation email: %s", exc)
            return False


class NotificationDispatcher:
    """Fire-and-forget submission of notifications to a small worker pool."""

    def __init__(self, notifier: EmailNotifier, max_workers: int = 2):
        self.notifier = notifier
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="notify")

    def itinerary_created(self, user_email: str, user_name: str, itinerary: ItineraryRecord) -> Optional[Future]:
        try:
            future = self._executor.submit(
                self.notifier.notify_itinerary_created, user_email, user_name, itinerary
            )
        except RuntimeError as exc:
            # executor already shut down
            logger.error("Failed to queue email notification: %s", exc)
            return None
        future.add_done_callback(self._log_failure)
        return future

    @staticmethod
    def _log_failure(future: Future) -> None:
        exc = future.exception()
        if exc is not None:
            logger.error("Failed to send email notification: %s", exc)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)
