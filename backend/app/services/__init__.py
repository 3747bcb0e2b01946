"""Business services."""

from app.services.performance_tracker import PerformanceTracker
from app.services.signal_scheduler import (
    PassResult,
    SchedulerConfig,
    SchedulerState,
    SignalScheduler,
)
from app.services.signal_service import SignalService

__all__ = [
    "PassResult",
    "PerformanceTracker",
    "SchedulerConfig",
    "SchedulerState",
    "SignalScheduler",
    "SignalService",
]
