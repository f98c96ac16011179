"""Join request filters (deny rules and auto-accept rules)."""
