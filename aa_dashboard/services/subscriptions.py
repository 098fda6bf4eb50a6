"""
Per-webhook subscription management.

Listing hydrates every subscribed id with a user lookup. Lookups run
concurrently and a failed lookup degrades to a placeholder entry instead of
failing the whole list.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, List

import httpx

from aa_dashboard.clients.x_api import UpstreamAPIError, XApiClient
from aa_dashboard.schemas.webhooks import SubscriberProfile

logger = logging.getLogger(__name__)


def _subscribed_ids(payload: Any) -> List[str]:
    """Pull user ids out of a subscriptions list payload, keeping first occurrences."""
    data = payload.get("data") if isinstance(payload, dict) else None
    entries = data.get("subscriptions") if isinstance(data, dict) else None
    ids: List[str] = []
    for entry in entries or []:
        user_id = entry.get("user_id") if isinstance(entry, dict) else entry
        if user_id is None:
            continue
        user_id = str(user_id)
        if user_id not in ids:
            ids.append(user_id)
    return ids


def _placeholder(user_id: str, message: str) -> SubscriberProfile:
    return SubscriberProfile(id=user_id, error=True, message=message)


class SubscriptionService:
    """Forward subscription operations and hydrate subscriber profiles."""

    def __init__(self, client: XApiClient) -> None:
        self._client = client

    async def count(self) -> Any:
        return await self._client.subscription_count()

    async def check(self, webhook_id: str, *, user_token: str) -> Any:
        return await self._client.check_subscription(webhook_id, user_token=user_token)

    async def subscribe(self, webhook_id: str, *, user_token: str) -> Any:
        return await self._client.subscribe(webhook_id, user_token=user_token)

    async def unsubscribe(self, webhook_id: str, user_id: str, *, user_token: str) -> Any:
        return await self._client.unsubscribe(webhook_id, user_id, user_token=user_token)

    async def list_subscribers(self, webhook_id: str) -> List[SubscriberProfile]:
        payload = await self._client.list_subscriptions(webhook_id)
        user_ids = _subscribed_ids(payload)
        return list(await asyncio.gather(*(self.hydrate(user_id) for user_id in user_ids)))

    async def hydrate(self, user_id: str) -> SubscriberProfile:
        try:
            payload = await self._client.get_user(user_id)
        except UpstreamAPIError as exc:
            return _placeholder(user_id, f"User lookup failed with status {exc.status_code}.")
        except httpx.HTTPError as exc:
            logger.warning("User lookup for %s failed: %s", user_id, exc)
            return _placeholder(user_id, "Network error while fetching user details.")

        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, dict):
            return _placeholder(user_id, "User details not found or in unexpected format.")

        return SubscriberProfile(
            id=str(data.get("id") or user_id),
            username=data.get("username"),
            name=data.get("name"),
            avatar_url=data.get("profile_image_url"),
        )


__all__ = ["SubscriptionService"]
