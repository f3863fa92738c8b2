"""Discord implementations of the platform and prompter boundaries."""

from __future__ import annotations

from .platform import DiscordPlatform
from .prompter import DeleteConfirmView, DiscordPrompter

__all__ = ["DeleteConfirmView", "DiscordPlatform", "DiscordPrompter"]
