"""
Repository subscriptions: which Slack channels want events for a repository.

Every subscription is its own blob, so concurrent subscribe commands for
different channels never read-modify-write a shared value. Writes are
last-write-wins with no version check.
"""

from __future__ import annotations

import json

import structlog
from pydantic import BaseModel, ConfigDict, Field

from .blobs import BlobStore
from .keys import RepositoryKey, SubscriptionKey, encode_key, encode_prefix

log = structlog.get_logger()

STORE_NAME = "repository-subscriptions"


class SubscriptionRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # Whether the subscribing workspace is part of an Enterprise Grid
    slack_enterprise_id: bool = Field(default=False, alias="slackEnterpriseId")


class SubscriptionStore:
    """CRUD and prefix scans over subscription blobs."""

    def __init__(self, blobs: BlobStore) -> None:
        self._blobs = blobs

    async def get_subscription_keys_for_repository(self, key: RepositoryKey) -> list[str]:
        """All stored keys for one repository + installation + Slack App.

        An empty list is a normal result, not an error.
        """
        return await self._blobs.list(encode_prefix(key))

    async def get(self, key: SubscriptionKey) -> SubscriptionRecord | None:
        raw = await self._blobs.get(encode_key(key))
        if raw is None:
            return None
        return SubscriptionRecord.model_validate(json.loads(raw))

    async def set(self, key: SubscriptionKey, record: SubscriptionRecord) -> None:
        encoded = encode_key(key)
        await self._blobs.set_json(encoded, record.model_dump(by_alias=True))
        log.debug("subscriptions.stored", key=encoded)

    async def delete(self, key: SubscriptionKey) -> None:
        encoded = encode_key(key)
        await self._blobs.delete(encoded)
        log.debug("subscriptions.deleted", key=encoded)
