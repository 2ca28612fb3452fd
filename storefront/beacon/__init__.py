from .controller import (
    HEARTBEAT_INTERVAL_S, STATS_INTERVAL_S, BeaconController, resolve_api_base,
)
from .display import (
    FALLBACK_TEXT, LOADING_TEXT, CounterDisplay, DisplaySink, TerminalSink,
    format_stats,
)
from .storage import (
    JsonFileStore, KeyValueStore, MemoryStore, ensure_client_identity,
)
from .timers import PeriodicTask

__all__ = [
    "BeaconController", "resolve_api_base", "HEARTBEAT_INTERVAL_S",
    "STATS_INTERVAL_S", "CounterDisplay", "DisplaySink", "TerminalSink",
    "format_stats", "LOADING_TEXT", "FALLBACK_TEXT", "JsonFileStore",
    "KeyValueStore", "MemoryStore", "ensure_client_identity", "PeriodicTask",
]
