"""Central configuration for the relay.

All settings are loaded from environment variables (with ``.env`` file support
via *python-dotenv*).  Validation and type coercion are handled by
``pydantic-settings``.

Usage::

    from relay.config import get_settings

    settings = get_settings()
    print(settings.REDIS_URL)

The :func:`get_settings` helper creates the :class:`RelaySettings` singleton
lazily so that importing this module never triggers validation before the
caller has had a chance to load a ``.env`` file or populate the environment.
"""

from __future__ import annotations

import functools
import logging
import os
from pathlib import Path
from typing import ClassVar

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

# Canonical .env locations (checked in order of priority).
ENV_PATHS: list[str] = ["config/.env", ".env"]

# Settings without which the relay does not start at all.
REQUIRED_KEYS: tuple[str, ...] = ("DISCORD_TOKEN", "REDIS_URL")

# ---------------------------------------------------------------------------
# Settings model
# ---------------------------------------------------------------------------


class RelaySettings(BaseSettings):
    """Validated configuration for the relay.

    Required fields (no defaults):
        ``DISCORD_TOKEN``, ``REDIS_URL``

    Channel settings are optional; a channel whose topic or output channel
    is missing is simply not started.
    """

    model_config = SettingsConfigDict(
        # .env loading is handled by load_dotenv() in __main__.py.
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Required -- no defaults
    # ------------------------------------------------------------------
    DISCORD_TOKEN: str = Field(
        ...,
        description="Discord bot token used to post relay messages.",
    )
    REDIS_URL: str = Field(
        ...,
        description="Redis connection URL, e.g. redis://localhost:6379/0.",
    )

    # ------------------------------------------------------------------
    # Channels: topic + Discord output channel ID per binding
    # ------------------------------------------------------------------
    REDIS_ASAY_SUBSCRIPTION: str | None = Field(
        default=None,
        description="Redis channel carrying admin-say events.",
    )
    REDIS_ASAY_SUBSCRIPTION_DISCORD_CHANNEL_OUTPUT: str | None = Field(
        default=None,
        description="Discord channel ID receiving admin-say messages.",
    )
    REDIS_ACCESS_SUBSCRIPTION: str | None = Field(
        default=None,
        description="Redis channel carrying access events.",
    )
    REDIS_ACCESS_SUBSCRIPTION_DISCORD_CHANNEL_OUTPUT: str | None = Field(
        default=None,
        description="Discord channel ID receiving access messages.",
    )
    REDIS_ROUND_SUBSCRIPTION: str | None = Field(
        default=None,
        description="Redis channel carrying round events.",
    )
    REDIS_ROUND_SUBSCRIPTION_DISCORD_CHANNEL_OUTPUT: str | None = Field(
        default=None,
        description="Discord channel ID receiving round messages.",
    )
    REDIS_META_SUBSCRIPTION: str | None = Field(
        default=None,
        description="Redis channel carrying meta events.",
    )
    REDIS_META_SUBSCRIPTION_DISCORD_CHANNEL_OUTPUT: str | None = Field(
        default=None,
        description="Discord channel ID receiving meta messages.",
    )

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Root log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).",
    )

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def _normalise_log_level(cls, value: object) -> str:
        """Accept any casing and reject names :mod:`logging` does not know."""
        level = str(value).strip().upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"Unknown log level {value!r}")
        return level

    # ------------------------------------------------------------------
    # Repr safety -- redact secrets in logs / debug output
    # ------------------------------------------------------------------

    # The URL may embed a password.
    _SENSITIVE_FIELDS: ClassVar[set[str]] = {"DISCORD_TOKEN", "REDIS_URL"}

    def __repr__(self) -> str:
        fields = []
        for name in type(self).model_fields:
            val = getattr(self, name)
            if name in self._SENSITIVE_FIELDS:
                val = "***" if val else None
            fields.append(f"{name}={val!r}")
        return f"RelaySettings({', '.join(fields)})"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def find_env_file() -> Path | None:
    """Return the first existing ``.env`` file from :data:`ENV_PATHS`."""
    for candidate in ENV_PATHS:
        p = Path(candidate)
        if p.is_file():
            return p
    return None


def missing_required() -> list[str]:
    """Return the required keys available neither in the environment nor
    in the ``.env`` file."""
    missing = [key for key in REQUIRED_KEYS if not os.environ.get(key, "").strip()]
    if not missing:
        return []

    env_file = find_env_file()
    if env_file is None:
        return missing
    text = env_file.read_text(encoding="utf-8", errors="replace")
    return [
        key for key in missing
        if not any(
            line.strip().startswith(f"{key}=") and len(line.split("=", 1)[1].strip()) > 0
            for line in text.splitlines()
        )
    ]


def has_config() -> bool:
    """Return ``True`` if every required key is set somewhere."""
    return not missing_required()


# ---------------------------------------------------------------------------
# Lazy singleton accessor
# ---------------------------------------------------------------------------


@functools.lru_cache(maxsize=1)
def get_settings() -> RelaySettings:
    """Return the global :class:`RelaySettings` singleton.

    Raises:
        pydantic.ValidationError: If required settings are missing or any
            value fails validation.
    """
    logger.debug("Initialising RelaySettings from environment.")
    return RelaySettings()  # type: ignore[call-arg]
