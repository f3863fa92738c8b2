"""Discord command logging decorator."""
from __future__ import annotations

import functools
import logging
import time
from typing import Any, Callable

import discord

logger = logging.getLogger(__name__)


def track_command(func: Callable) -> Callable:
    """Decorator to log Discord command usage and duration."""

    @functools.wraps(func)
    async def wrapper(interaction: discord.Interaction, *args, **kwargs) -> Any:
        command_name = func.__name__
        user_id = str(interaction.user.id)
        guild_id = str(interaction.guild_id) if interaction.guild_id else "dm"
        start_time = time.time()
        success = False
        error_type = None

        try:
            result = await func(interaction, *args, **kwargs)
            success = True
            return result

        except Exception as e:
            error_type = type(e).__name__
            raise

        finally:
            duration_ms = (time.time() - start_time) * 1000
            if success:
                logger.info(
                    "Command %s by %s in %s succeeded in %.1f ms",
                    command_name,
                    user_id,
                    guild_id,
                    duration_ms,
                )
            else:
                logger.error(
                    "Command %s by %s in %s failed with %s after %.1f ms",
                    command_name,
                    user_id,
                    guild_id,
                    error_type,
                    duration_ms,
                )

    return wrapper
