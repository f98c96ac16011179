"""
Expiring counters for request throttling.

- **rate_counter.py**: The RateCounter protocol and the in-memory backend.
- **sqlite_counter.py**: aiosqlite backend for counters that outlive the process.
"""

from group_inspector.counter.rate_counter import MemoryRateCounter, RateCounter, counter_key
from group_inspector.counter.sqlite_counter import SqliteRateCounter

__all__ = ["MemoryRateCounter", "RateCounter", "SqliteRateCounter", "counter_key"]
