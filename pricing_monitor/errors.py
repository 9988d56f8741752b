# pricing_monitor/errors.py

"""Exception types raised by the engine's I/O collaborators."""


class PricingMonitorError(Exception):
    """Base class for pricing monitor failures."""


class CaptureError(PricingMonitorError):
    """A page could not be fetched after every attempt."""

    def __init__(self, url: str, reason: str = "") -> None:
        self.url = url
        self.reason = reason
        message = f"Capture failed for {url}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class NotificationError(PricingMonitorError):
    """An alert channel rejected or could not deliver a message."""
