"""Follow the live activity stream from a terminal by short-polling the dashboard."""

from __future__ import annotations

import argparse
import logging
import os
import time
from datetime import datetime
from typing import Any, Dict, List, Tuple

import httpx
from pydantic import TypeAdapter

from aa_dashboard.core.config import get_settings
from aa_dashboard.core.logging import configure_logging
from aa_dashboard.models.events import ActivityEvent
from aa_dashboard.services.event_feed import EventFeed
from aa_dashboard.services.event_renderer import EventCard, render_event

logger = logging.getLogger(__name__)

_EVENT_ADAPTER: TypeAdapter = TypeAdapter(ActivityEvent)


def _timestamp() -> str:
    return datetime.now().strftime("%H:%M:%S")


def card_from_delivery(delivery: Dict[str, Any]) -> EventCard:
    """Rebuild a display card from a delivered event payload."""
    event = _EVENT_ADAPTER.validate_python(delivery["event"])
    received_at = datetime.fromisoformat(delivery["received_at"])
    return render_event(event, received_at)


def poll_once(
    client: httpx.Client,
    token: str,
    cursor: int | None,
    feed: EventFeed[EventCard],
) -> Tuple[int, List[EventCard]]:
    """Fetch one poll result, add new cards to ``feed`` and return them."""
    params: Dict[str, Any] = {"token": token}
    if cursor is not None:
        params["cursor"] = cursor
    response = client.get("/events/poll", params=params)
    response.raise_for_status()
    body = response.json()

    new_cards: List[EventCard] = []
    for delivery in body.get("events", []):
        if delivery["event"].get("kind") == "connection_ack":
            logger.info("Connection acknowledged by server.")
            continue
        card = card_from_delivery(delivery)
        feed.add(card)
        new_cards.append(card)
    return int(body["cursor"]), new_cards


def watch(base_url: str, token: str, poll_interval: float, max_events: int) -> None:
    feed: EventFeed[EventCard] = EventFeed(max_events=max_events)
    cursor: int | None = None
    print(f"Watching {base_url} for activity (Ctrl+C to exit)")

    with httpx.Client(base_url=base_url, timeout=None) as client:
        while True:
            try:
                cursor, cards = poll_once(client, token, cursor, feed)
                for card in cards:
                    print(f"\n[{_timestamp()}] {card.to_text()}")
            except httpx.HTTPError as exc:
                print(f"[{_timestamp()}] Error polling server: {exc}")
            time.sleep(poll_interval)


def main(argv: list[str] | None = None) -> None:
    settings = get_settings()
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--base-url", default=f"http://localhost:{settings.port}")
    parser.add_argument(
        "--token",
        default=os.environ.get("DASHBOARD_ACCESS_TOKEN"),
        help="Access token issued by /api/auth/callback (default: $DASHBOARD_ACCESS_TOKEN).",
    )
    parser.add_argument("--interval", type=float, default=settings.events.poll_interval_seconds)
    parser.add_argument("--max-events", type=int, default=settings.events.max_displayed)
    args = parser.parse_args(argv)
    if not args.token:
        parser.error("an access token is required (--token or DASHBOARD_ACCESS_TOKEN)")

    configure_logging(settings.log_level)
    watch(args.base_url, args.token, args.interval, args.max_events)


if __name__ == "__main__":  # pragma: no cover - manual execution path
    try:
        main()
    except KeyboardInterrupt:
        print("\nStopped watching.")
