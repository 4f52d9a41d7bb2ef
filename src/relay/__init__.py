"""One-way relay from Redis pub/sub channels to Discord text channels.

Public API:
    :class:`DispatchSupervisor` -- runs one worker per configured channel.
    :class:`ChannelWorker` -- subscribe/consume/transform/deliver loop.
    :class:`ChannelDefinition` -- a resolved (topic, destination, transform).
    :class:`OutboundMessage` -- transform output, rendered as a Discord embed.
"""

from relay.channels import ChannelDefinition
from relay.models import OutboundMessage
from relay.supervisor import DispatchSupervisor
from relay.worker import ChannelWorker

__all__ = [
    "ChannelDefinition",
    "ChannelWorker",
    "DispatchSupervisor",
    "OutboundMessage",
]
