"""Session lifecycle publisher for pub/sub observers."""

import logging
import uuid
from typing import Any

from pubsub import pub

from ..models.events import SessionEvent

logger = logging.getLogger(__name__)


class SessionPublisher:
    """Publishes session lifecycle events using pubsub.pub."""

    def __init__(self, topic: str = "session.lifecycle"):
        """Initialize session publisher.

        Args:
            topic: Pub/sub topic name for lifecycle events
        """
        self.topic = topic
        logger.info(f"SessionPublisher initialized with topic: {topic}")

    def publish(self, event_type: str, **metadata: Any) -> SessionEvent:
        """Publish a lifecycle event; subscribers receive it as ``event``.

        A failing subscriber is logged and never reaches the caller, so the
        session state stays consistent with what was published.
        """
        event = SessionEvent(
            event_id=uuid.uuid4().hex,
            event_type=event_type,
            metadata=metadata,
        )
        try:
            pub.sendMessage(self.topic, event=event)
        except Exception:
            logger.exception(f"Subscriber failed while handling session event: {event_type}")
        else:
            logger.debug(f"Published session event: {event_type}")
        return event
