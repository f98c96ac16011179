"""
Immutable records and small mutable entities shared across the inspector.

- **request_datatypes.py**: JoinRequest, InboundMessage, Decision and reason codes.
- **rule_datatypes.py**: Compiled deny/accept rules produced at configuration load.
- **approval_datatypes.py**: PendingApproval, its states, timeout fallback and
  the notify target address.
"""
