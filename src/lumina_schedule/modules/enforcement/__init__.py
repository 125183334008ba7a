"""
Schedule enforcement.

Re-applies the active schedule when the controller drifts away from it,
after leaving manual changes alone for a mode-dependent grace period.
"""

from .models import (
    EnforcementConfig,
    EnforcementMode,
    EnforcementRuntimeState,
    EnforcementState,
    TickAction,
    TickResult,
)
from .ticker import ManualTicker, ThreadTicker, Ticker
from .engine import EnforcementService, find_mismatch

__all__ = [
    "EnforcementConfig",
    "EnforcementMode",
    "EnforcementRuntimeState",
    "EnforcementState",
    "TickAction",
    "TickResult",
    "ManualTicker",
    "ThreadTicker",
    "Ticker",
    "EnforcementService",
    "find_mismatch",
]
