"""Who may run the configuration commands."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .platform import ChatPlatform


@dataclass(frozen=True)
class Requester:
    user_id: int
    is_administrator: bool


@dataclass(frozen=True)
class Community:
    owner_id: int
    member_count: int

    @classmethod
    def from_platform(cls, platform: ChatPlatform) -> "Community":
        return cls(owner_id=int(platform.owner_id), member_count=platform.member_count)


def can_configure(
    requester: Requester,
    community: Community,
    *,
    bot_owner_id: Optional[int],
    max_member_free_config_count: int,
) -> bool:
    """Return whether ``requester`` may create or delete the configuration.

    The bot owner, the community owner and administrators always may. Small
    communities, at or below ``max_member_free_config_count`` members, let
    anyone configure them.
    """

    if bot_owner_id is not None and requester.user_id == bot_owner_id:
        return True
    if requester.user_id == community.owner_id or requester.is_administrator:
        return True
    return community.member_count <= max_member_free_config_count


__all__ = ["Community", "Requester", "can_configure"]
