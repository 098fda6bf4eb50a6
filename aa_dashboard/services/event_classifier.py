"""
Classify raw Account Activity payloads into normalized events.

The upstream envelope carries no type tag: each activity kind arrives under
its own array-valued key. ``classify`` checks those keys in a fixed order and
the first match wins. It never raises; anything it cannot place becomes
``Unrecognized`` with the payload attached.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from aa_dashboard.models.events import (
    UNKNOWN_USER_NAME,
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
    Unrecognized,
    UserRef,
)


def _as_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _first(payload: Dict[str, Any], key: str) -> Optional[Dict[str, Any]]:
    """Return the first entry of a non-empty array field, else ``None``."""
    items = payload.get(key)
    if not isinstance(items, list) or not items:
        return None
    return _as_dict(items[0])


def _user(obj: Any) -> UserRef:
    data = _as_dict(obj)
    return UserRef(
        id=_as_str(data.get("id_str") or data.get("id")),
        name=_as_str(data.get("name")),
        handle=_as_str(data.get("screen_name") or data.get("username")),
    )


def _lookup_user(users: Dict[str, Any], user_id: Optional[str]) -> UserRef:
    """Resolve a user from the payload's ``users`` side table."""
    entry = users.get(user_id) if user_id is not None else None
    if not isinstance(entry, dict):
        return UserRef(id=user_id, name=UNKNOWN_USER_NAME, handle=user_id)
    ref = _user(entry)
    return UserRef(
        id=ref.id or user_id,
        name=ref.name or UNKNOWN_USER_NAME,
        handle=ref.handle or user_id,
    )


def _recipient_id(event: Dict[str, Any]) -> Optional[str]:
    return _as_str(_as_dict(event.get("target")).get("recipient_id"))


def classify(payload: Any) -> ActivityEvent:
    """Map a webhook payload onto exactly one ``ActivityEvent`` variant."""
    if not isinstance(payload, dict):
        return Unrecognized(raw=payload)

    if payload.get("type") == "connection_ack":
        return ConnectionAck(message=str(payload.get("message") or ""))

    post = _first(payload, "tweet_create_events")
    if post is not None:
        return PostCreated(
            author=_user(post.get("user")),
            text=str(post.get("text") or ""),
            post_id=_as_str(post.get("id_str") or post.get("id")),
            created_at=_as_str(post.get("created_at")),
        )

    deletion = _first(payload, "tweet_delete_events")
    if deletion is not None:
        status = _as_dict(deletion.get("status"))
        return PostDeleted(
            post_id=_as_str(status.get("id")),
            user_id=_as_str(status.get("user_id")),
            event_epoch_ms=_as_str(deletion.get("timestamp_ms")),
        )

    favorite = _first(payload, "favorite_events")
    if favorite is not None:
        favorited = _as_dict(favorite.get("favorited_status"))
        return Favorited(
            actor=_user(favorite.get("user")),
            favorited_post_id=_as_str(favorited.get("id_str") or favorited.get("id")),
            favorited_post_author_handle=_as_str(
                _as_dict(favorited.get("user")).get("screen_name")
            ),
            created_at=_as_str(favorite.get("created_at")),
        )

    follow = _first(payload, "follow_events")
    if follow is not None:
        return FollowChanged(
            actor=_user(follow.get("source")),
            target=_user(follow.get("target")),
            is_follow=follow.get("type") == "follow",
            created_timestamp=_as_str(follow.get("created_timestamp")),
        )

    mute = _first(payload, "mute_events")
    if mute is not None:
        return MuteChanged(
            actor=_user(mute.get("source")),
            target=_user(mute.get("target")),
            is_mute=mute.get("type") == "mute",
            created_timestamp=_as_str(mute.get("created_timestamp")),
        )

    if payload.get("replay_job_status") is not None:
        job = _as_dict(payload.get("replay_job_status"))
        return ReplayStatus(
            webhook_id=_as_str(job.get("webhook_id")),
            job_id=_as_str(job.get("job_id")),
            state=_as_str(job.get("job_state")),
            description=_as_str(job.get("job_state_description")),
        )

    for_user_id = _as_str(payload.get("for_user_id"))
    users = _as_dict(payload.get("users"))

    message = _first(payload, "direct_message_events")
    if message is not None:
        if message.get("type") != "message_create":
            return DMOther(raw=payload)
        message_create = _as_dict(message.get("message_create"))
        sender_id = _as_str(message_create.get("sender_id"))
        recipient_id = _recipient_id(message_create)
        sent = sender_id is not None and sender_id == for_user_id
        return DMCreated(
            direction="sent" if sent else "received",
            counterpart=_lookup_user(users, recipient_id if sent else sender_id),
            text=str(_as_dict(message_create.get("message_data")).get("text") or ""),
            dm_id=_as_str(message.get("id")),
            created_at=_as_str(message.get("created_timestamp")),
        )

    typing = _first(payload, "direct_message_indicate_typing_events")
    if typing is not None:
        recipient_id = _recipient_id(typing)
        return TypingIndicator(
            sender=_lookup_user(users, _as_str(typing.get("sender_id"))),
            recipient_id=recipient_id,
            directed_at_self=recipient_id is not None and recipient_id == for_user_id,
            created_timestamp=_as_str(typing.get("created_timestamp")),
        )

    read = _first(payload, "direct_message_mark_read_events")
    if read is not None:
        original_sender_id = _recipient_id(read)
        return ReadReceipt(
            reader=_lookup_user(users, _as_str(read.get("sender_id"))),
            original_sender=_lookup_user(users, original_sender_id),
            last_read_event_id=_as_str(read.get("last_read_event_id")),
            self_is_original_sender=(
                original_sender_id is not None and original_sender_id == for_user_id
            ),
            created_timestamp=_as_str(read.get("created_timestamp")),
        )

    return Unrecognized(raw=payload)


__all__ = ["classify"]
