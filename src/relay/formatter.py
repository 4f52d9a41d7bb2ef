"""Discord rendering for outbound relay messages.

Transforms produce platform-neutral :class:`~relay.models.OutboundMessage`
values; this module turns them into :class:`discord.Embed` objects that fit
inside Discord's embed limits.

Usage::

    from relay.formatter import MessageFormatter

    embed = MessageFormatter.to_embed(message)
    await channel.send(embed=embed)
"""

from __future__ import annotations

import discord

from relay.models import OutboundMessage

# Discord hard limits
_EMBED_TITLE_LIMIT: int = 256
_EMBED_DESCRIPTION_LIMIT: int = 4096
_EMBED_FOOTER_LIMIT: int = 2048


class MessageFormatter:
    """Format outbound messages for Discord.

    All methods are static so the formatter can be used without instantiation.
    """

    @staticmethod
    def to_embed(message: OutboundMessage) -> discord.Embed:
        """Create a Discord embed for *message*.

        Args:
            message: The message produced by a payload transform.

        Returns:
            A :class:`discord.Embed` with title, description, optional footer,
            timestamp and accent colour.  Over-long fields are truncated.
        """
        embed = discord.Embed(
            title=MessageFormatter.truncate(message.title, _EMBED_TITLE_LIMIT),
            description=MessageFormatter.truncate(message.body, _EMBED_DESCRIPTION_LIMIT),
            color=message.color,
            timestamp=message.timestamp,
        )
        if message.footer:
            embed.set_footer(text=MessageFormatter.truncate(message.footer, _EMBED_FOOTER_LIMIT))
        return embed

    @staticmethod
    def truncate(text: str, limit: int) -> str:
        """Trim *text* to *limit* characters, marking the cut with an ellipsis."""
        if len(text) <= limit:
            return text
        return text[: limit - 3] + "..."
