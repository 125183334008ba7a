"""
Schedule resolution: which rule is in effect right now.

Resolves clock and solar triggers to concrete instants and picks the
most recently started active rule, including overnight windows that
began the previous day.
"""

from .solar import resolve_trigger, solar_time
from .finder import ActiveRule, ScheduleFinder, find_active

__all__ = [
    "resolve_trigger",
    "solar_time",
    "ActiveRule",
    "ScheduleFinder",
    "find_active",
]
