"""Turn normalized activity events into display cards."""

from __future__ import annotations

import html
import json
from dataclasses import dataclass, field
from datetime import datetime, timezone, tzinfo
from typing import Any, List, Optional

from aa_dashboard.models.events import (
    ActivityEvent,
    ConnectionAck,
    DMCreated,
    DMOther,
    Favorited,
    FollowChanged,
    MuteChanged,
    PostCreated,
    PostDeleted,
    ReadReceipt,
    ReplayStatus,
    TypingIndicator,
    UserRef,
)

X_TIMESTAMP_FORMAT = "%a %b %d %H:%M:%S %z %Y"
DISPLAY_FORMAT = "%Y-%m-%d %H:%M:%S %Z"


@dataclass(slots=True)
class EventCard:
    """Presentation of one event. Text fields hold unescaped plain text."""

    title: str
    css_class: str
    lines: List[str] = field(default_factory=list)
    footer: List[str] = field(default_factory=list)
    details: Optional[str] = None

    def to_html(self) -> str:
        parts = [f'<div class="event-card {self.css_class}">', f"<h4>{html.escape(self.title)}</h4>"]
        parts.extend(f"<p>{html.escape(line)}</p>" for line in self.lines)
        if self.details is not None:
            parts.append(f"<pre>{html.escape(self.details)}</pre>")
        parts.extend(f"<p><small>{html.escape(line)}</small></p>" for line in self.footer)
        parts.append("</div>")
        return "".join(parts)

    def to_text(self) -> str:
        body = [f"[{self.title}]", *self.lines]
        if self.details is not None:
            body.append(self.details)
        body.extend(self.footer)
        return "\n".join(body)


def format_x_timestamp(value: Optional[str], tz: tzinfo = timezone.utc) -> str:
    """Format ``Thu May 15 12:35:18 +0000 2025``; unparseable input is returned as-is."""
    if not value:
        return "N/A"
    try:
        parsed = datetime.strptime(value, X_TIMESTAMP_FORMAT)
    except ValueError:
        return value
    return parsed.astimezone(tz).strftime(DISPLAY_FORMAT)


def format_epoch_ms(value: Optional[str], tz: tzinfo = timezone.utc) -> str:
    """Format a millisecond epoch string; unparseable input is returned as-is."""
    if not value:
        return "N/A"
    try:
        parsed = datetime.fromtimestamp(int(value) / 1000, tz=timezone.utc)
    except (ValueError, OverflowError, OSError):
        return value
    return parsed.astimezone(tz).strftime(DISPLAY_FORMAT)


def _who(user: UserRef) -> str:
    return f"{user.name or 'Unknown'} (@{user.handle or user.id or '?'})"


def _pretty(raw: Any) -> str:
    return json.dumps(raw, indent=2, sort_keys=True, default=str)


def render_event(
    event: ActivityEvent,
    received_at: Optional[datetime] = None,
    tz: tzinfo = timezone.utc,
) -> EventCard:
    """Build the card for an event received at ``received_at``."""
    received = (received_at or datetime.now(timezone.utc)).astimezone(tz).strftime(DISPLAY_FORMAT)
    received_line = f"Received: {received}"

    if isinstance(event, ConnectionAck):
        return EventCard("System Message", "event-card-system", [event.message], [f"At: {received}"])

    if isinstance(event, PostCreated):
        return EventCard(
            "New Post",
            "event-card-tweet-create",
            [f"From: {_who(event.author)}", f"Post: {event.text}"],
            [
                f"Post ID: {event.post_id} | User ID: {event.author.id}",
                f"Posted At: {format_x_timestamp(event.created_at, tz)} | {received_line}",
            ],
        )

    if isinstance(event, PostDeleted):
        return EventCard(
            "Post Deleted",
            "event-card-tweet-delete",
            [f"Post ID: {event.post_id}", f"User ID: {event.user_id}"],
            [
                f"Event Timestamp (UTC ms): {event.event_epoch_ms} | "
                f"Processed: {format_epoch_ms(event.event_epoch_ms, tz)}",
                received_line,
            ],
        )

    if isinstance(event, Favorited):
        return EventCard(
            "Post Favorited",
            "event-card-favorite",
            [
                f"User: {_who(event.actor)} favorited a post.",
                f"Favorited Post ID: {event.favorited_post_id}",
                f"Favorited Post User: @{event.favorited_post_author_handle}",
            ],
            [f"Event At: {format_x_timestamp(event.created_at, tz)} | {received_line}"],
        )

    if isinstance(event, FollowChanged):
        action = "followed" if event.is_follow else "unfollowed"
        return EventCard(
            f"User {action.capitalize()}",
            "event-card-follow" if event.is_follow else "event-card-unfollow",
            [f"{_who(event.actor)} {action} {_who(event.target)}."],
            [f"Event Timestamp: {format_epoch_ms(event.created_timestamp, tz)} | {received_line}"],
        )

    if isinstance(event, MuteChanged):
        action = "muted" if event.is_mute else "unmuted"
        return EventCard(
            f"User {action.capitalize()}",
            "event-card-mute" if event.is_mute else "event-card-unmute",
            [f"{_who(event.actor)} {action} {_who(event.target)}."],
            [f"Event Timestamp: {format_epoch_ms(event.created_timestamp, tz)} | {received_line}"],
        )

    if isinstance(event, ReplayStatus):
        return EventCard(
            "Replay Job Status",
            "event-card-replay-status",
            [
                f"Webhook ID: {event.webhook_id}",
                f"Job ID: {event.job_id}",
                f"State: {event.state}",
                f"Description: {event.description or 'N/A'}",
            ],
            [received_line],
        )

    if isinstance(event, DMCreated):
        counterpart = f"@{event.counterpart.handle} ({event.counterpart.name})"
        if event.direction == "sent":
            title, css_class, header = "DM - Sent", "event-card-dm-sent", f"To: {counterpart}"
        else:
            title, css_class, header = "DM - Received", "event-card-dm-received", f"From: {counterpart}"
        return EventCard(
            title,
            css_class,
            [header, f"Message: {event.text}"],
            [
                f"DM ID: {event.dm_id} | Timestamp: {format_epoch_ms(event.created_at, tz)}",
                received_line,
            ],
        )

    if isinstance(event, DMOther):
        return EventCard(
            "Direct Message Event", "event-card-system", details=_pretty(event.raw), footer=[received_line]
        )

    if isinstance(event, TypingIndicator):
        sender = f"@{event.sender.handle} ({event.sender.name})"
        if event.directed_at_self:
            line = f"{sender} is typing..."
        else:
            line = f"{sender} is typing to {event.recipient_id}..."
        return EventCard(
            "DM - Typing Indicator",
            "event-card-dm-typing",
            [line],
            [f"Timestamp: {format_epoch_ms(event.created_timestamp, tz)} | {received_line}"],
        )

    if isinstance(event, ReadReceipt):
        reader = f"@{event.reader.handle} ({event.reader.name})"
        if event.self_is_original_sender:
            line = f"{reader} read your messages."
        else:
            sender = f"@{event.original_sender.handle} ({event.original_sender.name})"
            line = f"{reader} read messages from {sender}."
        return EventCard(
            "DM - Read Receipt",
            "event-card-dm-read-receipt",
            [line, f"Last read event ID: {event.last_read_event_id}"],
            [f"Timestamp: {format_epoch_ms(event.created_timestamp, tz)} | {received_line}"],
        )

    return EventCard(
        "Unrecognized Event",
        "event-card-system",
        details=_pretty(getattr(event, "raw", None)),
        footer=[received_line],
    )


__all__ = ["EventCard", "format_epoch_ms", "format_x_timestamp", "render_event"]
