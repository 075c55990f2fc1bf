"""Event models published by the recording service."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict


@dataclass
class SessionEvent:
    """Session lifecycle event."""
    event_id: str
    event_type: str  # "started", "paused", "resumed", "stopped", "error"
    timestamp: datetime = field(default_factory=datetime.now)
    metadata: Dict[str, Any] = field(default_factory=dict)
