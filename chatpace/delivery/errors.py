"""Delivery error taxonomy.

Terminal outcomes are carried on ``DeliveryResult.error`` rather than raised.
"""


class DeliveryError(Exception):
    """Base class for delivery failures."""

    #: Whether the session ends because of this error.
    terminal = True


class UpstreamBlocked(DeliveryError):
    """The model provider blocked the response (e.g. a safety filter)."""

    def __init__(self, reason: str):
        super().__init__(f"response blocked: {reason}")
        self.reason = reason


class UpstreamStopped(DeliveryError):
    """The model provider stopped the response for a non-normal reason."""

    def __init__(self, reason: str):
        super().__init__(f"response stopped: {reason}")
        self.reason = reason


class InactivityTimeout(DeliveryError):
    """No fragment arrived within the inactivity timeout."""

    def __init__(self, timeout_s: float):
        super().__init__(f"no fragment received for {timeout_s:.1f}s")
        self.timeout_s = timeout_s


class TransportError(DeliveryError):
    """The fragment stream itself failed."""


class SinkSendFailure(DeliveryError):
    """A single platform send failed. The session keeps going."""

    terminal = False

    def __init__(self, channel: str, text: str, cause: BaseException | None = None):
        super().__init__(f"send to {channel} failed: {cause}")
        self.channel = channel
        self.text = text
        self.cause = cause
