"""
Join request inspector.

Evaluates join requests against deny and auto-accept rules and escalates
undecided ones to a human reviewer who answers with chat commands.
"""

from group_inspector.datatypes.request_datatypes import Decision, DecisionKind, InboundMessage, JoinRequest, ReasonCode
from group_inspector.inspector import GroupInspector

__all__ = ["Decision", "DecisionKind", "GroupInspector", "InboundMessage", "JoinRequest", "ReasonCode"]

__version__ = "0.1.0"
