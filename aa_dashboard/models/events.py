"""
Normalized activity events.

Each variant is tagged by a ``kind`` literal so the union serializes to JSON
and validates back into the right class.
"""

from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field

UNKNOWN_USER_NAME = "Unknown User"


class UserRef(BaseModel):
    """Minimal user projection carried by events."""

    id: Optional[str] = None
    name: Optional[str] = None
    handle: Optional[str] = None


class ConnectionAck(BaseModel):
    kind: Literal["connection_ack"] = "connection_ack"
    message: str = ""


class PostCreated(BaseModel):
    kind: Literal["post_created"] = "post_created"
    author: UserRef
    text: str = ""
    post_id: Optional[str] = None
    created_at: Optional[str] = None


class PostDeleted(BaseModel):
    kind: Literal["post_deleted"] = "post_deleted"
    post_id: Optional[str] = None
    user_id: Optional[str] = None
    event_epoch_ms: Optional[str] = None


class Favorited(BaseModel):
    kind: Literal["favorited"] = "favorited"
    actor: UserRef
    favorited_post_id: Optional[str] = None
    favorited_post_author_handle: Optional[str] = None
    created_at: Optional[str] = None


class FollowChanged(BaseModel):
    kind: Literal["follow_changed"] = "follow_changed"
    actor: UserRef
    target: UserRef
    is_follow: bool
    created_timestamp: Optional[str] = None


class MuteChanged(BaseModel):
    kind: Literal["mute_changed"] = "mute_changed"
    actor: UserRef
    target: UserRef
    is_mute: bool
    created_timestamp: Optional[str] = None


class ReplayStatus(BaseModel):
    kind: Literal["replay_status"] = "replay_status"
    webhook_id: Optional[str] = None
    job_id: Optional[str] = None
    state: Optional[str] = None
    description: Optional[str] = None


class DMCreated(BaseModel):
    kind: Literal["dm_created"] = "dm_created"
    direction: Literal["sent", "received"]
    counterpart: UserRef
    text: str = ""
    dm_id: Optional[str] = None
    created_at: Optional[str] = None


class DMOther(BaseModel):
    """Direct message event of a sub-type the dashboard does not model."""

    kind: Literal["dm_other"] = "dm_other"
    raw: Any = None


class TypingIndicator(BaseModel):
    kind: Literal["typing_indicator"] = "typing_indicator"
    sender: UserRef
    recipient_id: Optional[str] = None
    directed_at_self: bool
    created_timestamp: Optional[str] = None


class ReadReceipt(BaseModel):
    kind: Literal["read_receipt"] = "read_receipt"
    reader: UserRef
    original_sender: UserRef
    last_read_event_id: Optional[str] = None
    self_is_original_sender: bool
    created_timestamp: Optional[str] = None


class Unrecognized(BaseModel):
    kind: Literal["unrecognized"] = "unrecognized"
    raw: Any = None


ActivityEvent = Annotated[
    Union[
        ConnectionAck,
        PostCreated,
        PostDeleted,
        Favorited,
        FollowChanged,
        MuteChanged,
        ReplayStatus,
        DMCreated,
        DMOther,
        TypingIndicator,
        ReadReceipt,
        Unrecognized,
    ],
    Field(discriminator="kind"),
]


__all__ = [
    "ActivityEvent",
    "ConnectionAck",
    "DMCreated",
    "DMOther",
    "Favorited",
    "FollowChanged",
    "MuteChanged",
    "PostCreated",
    "PostDeleted",
    "ReadReceipt",
    "ReplayStatus",
    "TypingIndicator",
    "UNKNOWN_USER_NAME",
    "Unrecognized",
    "UserRef",
]
