"""Push notification delivery adapters."""

from tola_rates.notifications.onesignal import Notifier, OneSignalNotifier

__all__ = ["Notifier", "OneSignalNotifier"]
