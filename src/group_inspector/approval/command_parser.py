"""
Reviewer command grammar.

    Command    ::= SingleOp Number Reason? | BulkOp Reason?
    SingleOp   ::= "y" | "n" | "通过" | "拒绝"
    BulkOp     ::= "ya" | "na" | "全部同意" | "全部拒绝"

Keywords are case-insensitive and whitespace between parts is optional, so
``y1``, ``Y 1`` and ``n2 spam account`` all parse.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Union

SINGLE_PATTERN = re.compile(r"^(y|n|通过|拒绝)\s*(\d+)\s*(.*)$", re.IGNORECASE | re.DOTALL)
BULK_PATTERN = re.compile(r"^(ya|na|全部同意|全部拒绝)\s*(.*)$", re.IGNORECASE | re.DOTALL)

APPROVE_KEYWORDS = frozenset({"y", "通过", "ya", "全部同意"})


@dataclass(frozen=True, slots=True)
class SingleCommand:
    approve: bool
    sequence: int
    reason: str = ""


@dataclass(frozen=True, slots=True)
class BulkCommand:
    approve: bool
    reason: str = ""


Command = Union[SingleCommand, BulkCommand]


def parse_command(text: str) -> Command | None:
    """Parse one inbound message; returns None for anything that is not a command."""
    if not text:
        return None
    text = text.strip()

    match = SINGLE_PATTERN.match(text)
    if match:
        keyword, number, reason = match.groups()
        return SingleCommand(
            approve=keyword.lower() in APPROVE_KEYWORDS,
            sequence=int(number),
            reason=reason.strip(),
        )

    match = BULK_PATTERN.match(text)
    if match:
        keyword, reason = match.groups()
        return BulkCommand(approve=keyword.lower() in APPROVE_KEYWORDS, reason=reason.strip())

    return None
