"""
In-memory fan-out of live activity events.

The hub keeps the set of attached push-channel connections and a single
"latest event" slot that short-poll clients read. Nothing is buffered
beyond that slot: connections that attach late never see earlier events.
All access happens on the event loop, so no locking is needed.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, List, Optional, Protocol, Set

from aa_dashboard.models.events import ActivityEvent, ConnectionAck
from aa_dashboard.schemas.events import DeliveredEvent
from aa_dashboard.services.event_classifier import classify
from aa_dashboard.services.event_renderer import render_event

logger = logging.getLogger(__name__)


class EventConnection(Protocol):
    async def send_json(self, data: Any) -> None: ...


def _deliver(event: ActivityEvent, sequence: int) -> DeliveredEvent:
    received_at = datetime.now(timezone.utc)
    card = render_event(event, received_at)
    return DeliveredEvent(
        sequence=sequence,
        received_at=received_at,
        event=event,
        title=card.title,
        card_html=card.to_html(),
    )


class EventHub:
    """Broadcast classified events to every attached connection."""

    def __init__(self) -> None:
        self._connections: Set[EventConnection] = set()
        self._sequence = 0
        self._latest: Optional[DeliveredEvent] = None

    @property
    def cursor(self) -> int:
        return self._sequence

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    def register(self, connection: EventConnection) -> None:
        self._connections.add(connection)
        logger.info("Live connection attached (%d total).", len(self._connections))

    def unregister(self, connection: EventConnection) -> None:
        self._connections.discard(connection)
        logger.info("Live connection detached (%d total).", len(self._connections))

    def acknowledgement(self, message: str) -> DeliveredEvent:
        """Build the sentinel sent once when a client attaches."""
        return _deliver(ConnectionAck(message=message), self._sequence)

    def latest_since(self, cursor: int) -> List[DeliveredEvent]:
        if self._latest is None or self._latest.sequence <= cursor:
            return []
        return [self._latest]

    async def publish(self, payload: Any) -> DeliveredEvent:
        """Classify an upstream payload and push it to all connections."""
        event = classify(payload)
        self._sequence += 1
        delivered = _deliver(event, self._sequence)
        self._latest = delivered
        logger.info(
            "Publishing %s event #%d to %d connection(s).",
            event.kind,
            delivered.sequence,
            len(self._connections),
        )
        await self.broadcast(delivered)
        return delivered

    async def broadcast(self, delivered: DeliveredEvent) -> None:
        message = delivered.model_dump(mode="json")
        dead: List[EventConnection] = []
        for connection in list(self._connections):
            try:
                await connection.send_json(message)
            except Exception as exc:  # closed sockets raise assorted transport errors
                logger.warning("Dropping live connection after failed send: %s", exc)
                dead.append(connection)
        for connection in dead:
            self._connections.discard(connection)


__all__ = ["EventConnection", "EventHub"]
