"""Event hook used by the network-facing components to report responses.

Components call ``hook(event_name, fields)`` after each remote call instead of
logging inline, so callers can collect, count or silence these events.
"""
from typing import Any, Callable, Dict, List, Tuple

import structlog

logger = structlog.get_logger()

EventHook = Callable[[str, Dict[str, Any]], None]


def log_event(event: str, fields: Dict[str, Any]) -> None:
    """Default hook: forward the event to structlog.

    Events ending in ``_failed`` are logged at error level.
    """
    if event.endswith("_failed"):
        logger.error(event, **fields)
    else:
        logger.info(event, **fields)


class EventRecorder:
    """Hook that keeps every event in memory (useful in tests and scripts)."""

    def __init__(self):
        self.events: List[Tuple[str, Dict[str, Any]]] = []

    def __call__(self, event: str, fields: Dict[str, Any]) -> None:
        self.events.append((event, dict(fields)))

    def names(self) -> List[str]:
        return [name for name, _ in self.events]
