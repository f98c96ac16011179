"""
Manual approval of escalated join requests.

- **command_parser.py**: Grammar of reviewer commands (single and bulk).
- **listeners.py**: Target-scoped command listeners with idempotent disposal.
- **registry.py**: Pending approvals by sequence number and (applicant, group).
- **state_machine.py**: Escalation, resolution, timeout and superseding.
"""
