"""Entry point for `python -m relay`."""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import TYPE_CHECKING

from dotenv import load_dotenv
from pydantic import ValidationError

if TYPE_CHECKING:
    from relay.config import RelaySettings
    from relay.models import WorkerStatus

log = logging.getLogger("relay")


async def run(settings: RelaySettings) -> list[WorkerStatus]:
    """Connect to Discord and Redis, then relay until every worker ends."""
    from relay.broker import BrokerError, RedisBroker
    from relay.channels import resolve_channels
    from relay.gateway import DeliveryError, DiscordGateway
    from relay.supervisor import DispatchSupervisor

    gateway = DiscordGateway(settings.DISCORD_TOKEN)
    try:
        try:
            await gateway.connect()
        except DeliveryError as e:
            log.error("%s Disabling redis functionality.", e)
            return []

        try:
            broker = RedisBroker.from_url(settings.REDIS_URL)
        except BrokerError as e:
            log.error("%s Disabling redis functionality.", e)
            return []

        try:
            definitions = resolve_channels(settings)
            supervisor = DispatchSupervisor(definitions, broker, gateway)
            return await supervisor.run()
        finally:
            await broker.close()
    finally:
        await gateway.close()


def main() -> None:
    # Load .env from canonical locations before anything else.
    found = load_dotenv("config/.env")  # Primary (Docker + local)
    found = load_dotenv() or found      # Fallback (CWD/.env)

    # Configure logging
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    if not found:
        log.info("No local .env found. This is normal if running in docker. Continuing.")

    from relay.config import get_settings, missing_required

    missing = missing_required()
    if missing:
        log.warning(
            "Missing required configuration (%s). Disabling redis functionality.",
            ", ".join(missing),
        )
        return

    try:
        settings = get_settings()
    except ValidationError as e:
        log.error("Configuration error: %s", e)
        log.error("Edit config/.env (or set environment variables); see config/.env.example.")
        sys.exit(1)

    logging.getLogger().setLevel(settings.LOG_LEVEL)
    log.info("Starting relay...")

    try:
        asyncio.run(run(settings))
    except KeyboardInterrupt:
        log.info("Interrupted. Relay stopped.")


if __name__ == "__main__":
    main()
