"""
Platform collaborators.

- **base.py**: PlatformGateway and MessageTransport protocols.
- **discord_transport.py**: py-cord implementation of message delivery and
  member/reputation lookups.
"""

from group_inspector.transport.base import MessageTransport, PlatformGateway

__all__ = ["MessageTransport", "PlatformGateway"]
