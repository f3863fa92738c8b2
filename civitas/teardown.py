"""Delete a community's configuration graph.

The root guild record is removed first so a concurrent request cannot pick
up a half-deleted configuration. Its sub-graphs are then removed
concurrently; a failure in one branch does not stop the others.
"""
from __future__ import annotations

import asyncio
import logging
from typing import List, Optional

from .models import CivitasError, PoliticalGuild, RoleHolder, system_from_document
from .platform import ChatPlatform
from .store import (
    CATEGORIES,
    CHAMBERS,
    CHANNELS,
    EVENTS,
    GUILDS,
    POLITICAL_SYSTEMS,
    ROLE_HOLDERS,
    ROLES,
    DocumentStore,
)

logger = logging.getLogger(__name__)


class TeardownError(CivitasError):
    """Raised after teardown when one or more branches failed."""

    def __init__(self, message: str, failures: List[BaseException]) -> None:
        super().__init__(message)
        self.failures = failures


class Teardown:
    def __init__(
        self,
        store: DocumentStore,
        platform: ChatPlatform,
        *,
        reason: Optional[str] = "Server Configuration Deleted",
    ) -> None:
        self._store = store
        self._platform = platform
        self._reason = reason

    async def teardown(self, community_id: str, delete_external: bool) -> bool:
        """Remove the configuration for ``community_id``.

        Returns ``False`` when the community was not configured. With
        ``delete_external`` the linked roles and channels are deleted from the
        platform as well; otherwise they are left in place.
        """

        doc = self._store.find_one_and_delete(GUILDS, {"guild_id": community_id})
        if doc is None:
            return False
        guild = PoliticalGuild.from_document(doc)

        branches = [self._delete_category(ref, delete_external) for ref in guild.categories]
        branches.append(self._delete_role_holder(guild.roles, community_id, delete_external))
        branches.append(self._delete_political_system(guild.political_system))
        branches.append(self._delete_events(guild.events))
        results = await asyncio.gather(*branches, return_exceptions=True)

        failures = [result for result in results if isinstance(result, BaseException)]
        for failure in failures:
            logger.error(
                "Teardown branch failed for community %s",
                community_id,
                exc_info=(type(failure), failure, failure.__traceback__),
            )
        if failures:
            raise TeardownError(
                f"{len(failures)} teardown branches failed for community {community_id}",
                failures,
            )
        logger.info(
            "Deleted configuration for community %s (external objects %s)",
            community_id,
            "deleted" if delete_external else "kept",
        )
        return True

    async def _delete_category(self, ref: str, delete_external: bool) -> None:
        doc = self._store.find_one_and_delete(CATEGORIES, {"_id": ref})
        if doc is None:
            return
        tasks = [self._delete_channel(channel_ref, delete_external) for channel_ref in doc.get("channels", [])]
        if delete_external and doc.get("category_id"):
            tasks.append(self._platform.delete_channel(doc["category_id"], reason=self._reason))
        await _gather_or_raise(tasks)

    async def _delete_channel(self, ref: str, delete_external: bool) -> None:
        doc = self._store.find_one_and_delete(CHANNELS, {"_id": ref})
        if doc is None:
            return
        if delete_external and doc.get("channel_id"):
            await self._platform.delete_channel(doc["channel_id"], reason=self._reason)

    async def _delete_role_holder(
        self, ref: str, community_id: str, delete_external: bool
    ) -> None:
        doc = self._store.find_one_and_delete(ROLE_HOLDERS, {"_id": ref})
        if doc is None:
            return
        holder = RoleHolder.from_document(doc)
        await _gather_or_raise(
            [
                self._delete_role(role_ref, community_id, delete_external)
                for role_ref in holder.slots.values()
            ]
        )

    async def _delete_role(self, ref: str, community_id: str, delete_external: bool) -> None:
        doc = self._store.find_one_and_delete(ROLES, {"_id": ref})
        if doc is None:
            return
        role_id = doc.get("role_id")
        # The @everyone role shares the community id and cannot be deleted.
        if delete_external and role_id and role_id != community_id:
            await self._platform.delete_role(role_id, reason=self._reason)

    async def _delete_political_system(self, ref: str) -> None:
        doc = self._store.find_one_and_delete(POLITICAL_SYSTEMS, {"_id": ref})
        if doc is None:
            return
        system = system_from_document(doc)
        self._store.delete_many(CHAMBERS, [system.legislature, system.court])

    async def _delete_events(self, refs: List[str]) -> None:
        if refs:
            self._store.delete_many(EVENTS, refs)


async def _gather_or_raise(tasks) -> None:
    results = await asyncio.gather(*tasks, return_exceptions=True)
    failures = [result for result in results if isinstance(result, BaseException)]
    if len(failures) == 1:
        raise failures[0]
    if failures:
        raise TeardownError(f"{len(failures)} deletions failed", failures)


__all__ = ["Teardown", "TeardownError"]
