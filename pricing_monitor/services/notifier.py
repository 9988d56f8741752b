# pricing_monitor/services/notifier.py

"""E-mail and chat-webhook alerts for detected pricing changes."""

import json
import logging
import smtplib
from email.message import EmailMessage
from typing import Any

from curl_cffi import requests as curl_requests

from pricing_monitor.config.settings import Settings
from pricing_monitor.detection.diff_engine import DiffResult
from pricing_monitor.errors import NotificationError
from pricing_monitor.models.monitor import Monitor

logger = logging.getLogger("pricing_monitor.notifier")


def format_subject(monitor: Monitor) -> str:
    """Alert subject line."""
    return f"Pricing change detected: {monitor.label}"


def format_body(monitor: Monitor, diff: DiffResult) -> str:
    """Plain-text alert body with the summary and the full diff."""
    return (
        f"{diff.summary()}\n\n"
        f"URL: {monitor.url}\n\n"
        f"Diff:\n{json.dumps(diff.to_dict(), ensure_ascii=False, indent=2)}"
        "\n"
    )


class Notifier:
    """Send alerts through every channel configured for a monitor.

    Per-monitor addresses win over the global defaults in
    :class:`Settings`; a channel with no address at all is skipped.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or Settings()

    def email_recipient(self, monitor: Monitor) -> str | None:
        """Monitor address, else the global alert address."""
        return monitor.email or self.settings.ALERTS_TO_EMAIL or None

    def webhook_url(self, monitor: Monitor) -> str | None:
        """Monitor webhook, else the global chat webhook."""
        return (
            monitor.chat_webhook or self.settings.CHAT_WEBHOOK_URL or None
        )

    def send_email(self, to_addr: str, subject: str, body: str) -> None:
        """Send one plain-text message over SMTP."""
        s = self.settings
        msg = EmailMessage()
        msg["From"] = s.ALERTS_FROM_EMAIL
        msg["To"] = to_addr
        msg["Subject"] = subject
        msg.set_content(body)

        try:
            if s.SMTP_SSL:
                with smtplib.SMTP_SSL(s.SMTP_HOST, s.SMTP_PORT) as smtp:
                    if s.SMTP_USER and s.SMTP_PASS:
                        smtp.login(s.SMTP_USER, s.SMTP_PASS)
                    smtp.send_message(msg)
            else:
                with smtplib.SMTP(s.SMTP_HOST, s.SMTP_PORT) as smtp:
                    if s.SMTP_USER and s.SMTP_PASS:
                        smtp.starttls()
                        smtp.login(s.SMTP_USER, s.SMTP_PASS)
                    smtp.send_message(msg)
        except (smtplib.SMTPException, OSError) as exc:
            raise NotificationError(
                f"e-mail to {to_addr} failed: {exc}"
            ) from exc
        logger.info("Alert e-mailed to %s", to_addr)

    def send_webhook(self, url: str, payload: dict[str, Any]) -> None:
        """POST a JSON payload to a chat webhook on a fresh session."""
        session = curl_requests.Session(
            impersonate=self.settings.IMPERSONATE_BROWSER
        )
        try:
            resp = session.post(
                url,
                json=payload,
                timeout=self.settings.WEBHOOK_TIMEOUT,
            )
        except Exception as exc:
            raise NotificationError(
                f"webhook POST to {url} failed: {exc}"
            ) from exc
        finally:
            session.close()
        if resp.status_code >= 400:
            raise NotificationError(
                f"webhook {url} answered HTTP {resp.status_code}"
            )
        logger.info("Alert posted to webhook %s", url)

    def notify(self, monitor: Monitor, diff: DiffResult) -> list[str]:
        """Alert about *diff* on every configured channel.

        Returns the channels that delivered.  Every channel is tried;
        if any failed, :class:`NotificationError` is raised afterwards
        naming all failures.
        """
        if not diff.changed:
            return []

        delivered: list[str] = []
        failures: list[str] = []

        to_addr = self.email_recipient(monitor)
        if to_addr:
            try:
                self.send_email(
                    to_addr,
                    format_subject(monitor),
                    format_body(monitor, diff),
                )
                delivered.append("email")
            except NotificationError as exc:
                logger.error("%s", exc, exc_info=True)
                failures.append(str(exc))

        hook = self.webhook_url(monitor)
        if hook:
            payload: dict[str, Any] = {
                "text": f"{format_subject(monitor)}\n{diff.summary()}",
                "monitor_id": monitor.id,
                "url": monitor.url,
                "diff": diff.to_dict(),
            }
            try:
                self.send_webhook(hook, payload)
                delivered.append("webhook")
            except NotificationError as exc:
                logger.error("%s", exc, exc_info=True)
                failures.append(str(exc))

        if not to_addr and not hook:
            logger.debug(
                "No alert channel configured for monitor %s", monitor.id,
            )
        if failures:
            raise NotificationError("; ".join(failures))
        return delivered
