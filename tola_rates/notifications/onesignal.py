"""OneSignal push delivery for price alerts."""

from __future__ import annotations

from typing import Any, Protocol

import requests

from tola_rates.utils.logger import get_logger

LOGGER = get_logger(__name__)

ONESIGNAL_URL = "https://onesignal.com/api/v1/notifications"


class Notifier(Protocol):
    """Delivery capability: returns ``True`` only when the send was accepted."""

    def send(self, title: str, body: str) -> bool:
        ...  # pragma: no cover - protocol definition


class OneSignalNotifier:
    """Broadcast notifications to every subscribed device via OneSignal."""

    def __init__(
        self,
        app_id: str,
        api_key: str,
        *,
        android_channel_id: str | None = None,
        timeout: float = 15.0,
        session: requests.Session | None = None,
        url: str = ONESIGNAL_URL,
    ) -> None:
        if not app_id or not api_key:
            raise ValueError("OneSignal app id and API key are required")
        self.app_id = app_id
        self.api_key = api_key
        self.android_channel_id = android_channel_id
        self.timeout = timeout
        self.url = url
        self.session = session or requests.Session()

    def build_payload(self, title: str, body: str) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "app_id": self.app_id,
            "included_segments": ["All"],
            "headings": {"en": title},
            "contents": {"en": body},
            # Opens the gold screen when the notification is tapped.
            "data": {"type": "gold"},
            "priority": 10,
            "android_visibility": 1,
            "android_sound": "default",
            "ttl": 60,
        }
        if self.android_channel_id:
            payload["android_channel_id"] = self.android_channel_id
        return payload

    def send(self, title: str, body: str) -> bool:
        try:
            response = self.session.post(
                self.url,
                json=self.build_payload(title, body),
                headers={
                    "Authorization": f"Basic {self.api_key}",
                    "Content-Type": "application/json",
                },
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            detail = getattr(getattr(exc, "response", None), "text", None) or str(exc)
            LOGGER.error("Notification failed: %s", detail)
            return False
        LOGGER.info("Notification accepted by OneSignal")
        return True


__all__ = ["Notifier", "ONESIGNAL_URL", "OneSignalNotifier"]
