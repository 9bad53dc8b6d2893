"""Kill-switch protection and connection watchdog."""

from .kill_switch import KillSwitchMonitor, KillSwitchPhase, KillSwitchStatus
from .watchdog import ConnectionWatchdog

__all__ = [
    "ConnectionWatchdog",
    "KillSwitchMonitor",
    "KillSwitchPhase",
    "KillSwitchStatus",
]
