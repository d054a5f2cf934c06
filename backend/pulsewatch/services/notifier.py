"""Notifier collaborator - downtime and recovery alerts over webhook and email."""
import logging
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Deque, List, Optional, Protocol, runtime_checkable

import httpx

from ..config import Settings
from ..schemas import Target
from .email_sender import EmailConfig, EmailSenderService, email_sender_service

logger = logging.getLogger(__name__)

ALERT_HISTORY_SIZE = 50


class Notifier(Protocol):
    """What the engine needs to deliver alerts. Best effort."""

    async def send_downtime_alert(self, target: Target, error_category: str) -> None: ...

    async def send_recovery_alert(self, target: Target) -> None: ...


class AlertChannel(Protocol):
    async def send(self, title: str, message: str) -> bool: ...


@dataclass
class AlertRecord:
    """An alert as it was sent, kept for the dashboard's recent alerts view."""
    target_id: int
    target_name: str
    status: str  # UP or DOWN
    title: str
    message: str
    sent_at: datetime


@runtime_checkable
class AlertHistory(Protocol):
    """Notifiers that remember what they sent."""

    def recent_alerts(self) -> List[AlertRecord]: ...


class WebhookChannel:
    """Posts alerts as a form-encoded webhook."""

    def __init__(
        self,
        url: str,
        channel_name: Optional[str] = None,
        timeout: float = 10,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url
        self.channel_name = channel_name
        self.timeout = timeout
        self._transport = transport

    async def send(self, title: str, message: str) -> bool:
        data = {"title": title, "message": message}
        if self.channel_name:
            data["channelName"] = self.channel_name

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.url, data=data)
            if response.status_code < 400:
                logger.info(f"Webhook sent: {title}")
                return True
            logger.warning(f"Webhook returned {response.status_code}")
            return False
        except httpx.HTTPError as e:
            logger.error(f"Failed to send webhook: {e}")
            return False


class EmailChannel:
    """Sends alerts by SMTP to the configured recipients."""

    def __init__(self, config: EmailConfig, sender: EmailSenderService = email_sender_service):
        self.config = config
        self.sender = sender

    async def send(self, title: str, message: str) -> bool:
        body = "\n".join([message, "", "--", "PulseWatch Uptime Monitor"])
        return await self.sender.send_email(self.config, title, body)


class AlertNotifier:
    """Formats alerts, fans them out to every channel, and remembers them."""

    def __init__(self, channels: List[AlertChannel], history_size: int = ALERT_HISTORY_SIZE):
        self.channels = channels
        self._history: Deque[AlertRecord] = deque(maxlen=history_size)

    def recent_alerts(self) -> List[AlertRecord]:
        """Alerts sent so far, newest first."""
        return list(self._history)

    async def send_downtime_alert(self, target: Target, error_category: str) -> None:
        now = datetime.now(timezone.utc)
        title = f"🔴 DOWN: {target.name}"
        message = f"URL: {target.url}\nError: {error_category}\nTime: {now:%Y-%m-%d %H:%M:%S UTC}"
        await self._dispatch(target, "DOWN", title, message, now)

    async def send_recovery_alert(self, target: Target) -> None:
        now = datetime.now(timezone.utc)
        title = f"🟢 UP: {target.name}"
        message = f"URL: {target.url}\nRecovered at: {now:%Y-%m-%d %H:%M:%S UTC}"
        await self._dispatch(target, "UP", title, message, now)

    async def _dispatch(self, target: Target, status: str, title: str, message: str, sent_at: datetime):
        self._history.appendleft(AlertRecord(
            target_id=target.id,
            target_name=target.name,
            status=status,
            title=title,
            message=message,
            sent_at=sent_at,
        ))

        if not self.channels:
            logger.info(f"No alert channels configured, dropping alert: {title}")
            return

        for channel in self.channels:
            try:
                delivered = await channel.send(title, message)
            except Exception as e:
                logger.error(f"Alert channel {type(channel).__name__} failed: {e}")
                continue
            if not delivered:
                logger.warning(f"Alert not delivered via {type(channel).__name__}: {title}")


def build_notifier(settings: Settings) -> AlertNotifier:
    """Create a notifier with the channels enabled in settings."""
    channels: List[AlertChannel] = []

    if settings.alert_webhook_url:
        channels.append(WebhookChannel(settings.alert_webhook_url, settings.alert_channel_name))

    if settings.email_alerts_enabled:
        channels.append(EmailChannel(EmailConfig(
            host=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_username,
            password=settings.smtp_password,
            use_tls=settings.smtp_use_tls,
            from_address=settings.alert_email_from,
            to_address=settings.alert_email_to,
        )))

    return AlertNotifier(channels)
