"""
Exception taxonomy of the join-request inspector.

None of these are fatal to the host process: callers log them and degrade to
"do not auto-decide" or "log and continue".
"""


class InspectorError(Exception):
    """Base class for every error raised by group_inspector."""


class ConfigError(InspectorError):
    """A configured value (regex, notify target, structure) is malformed."""


class TransportError(InspectorError):
    """A call into the chat platform failed (lookup, membership scan, send)."""


class DeliveryError(TransportError):
    """A notification could not be delivered to its target."""


class ResolutionError(InspectorError):
    """The platform rejected or failed the approve/deny call for a request."""

    def __init__(self, request_id: str, message: str) -> None:
        super().__init__(f"Failed to resolve request {request_id}: {message}")
        self.request_id = request_id
