"""Configuration for the recurrence core."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import voluptuous as vol

from .const import (
    DEFAULT_CALENDAR_ID,
    DEFAULT_PREFERRED_SCOPE_TTL_MS,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    DEFAULT_THROTTLE_SECONDS,
    DEFAULT_TIMEZONE,
)
from .exceptions import ConfigError

CONF_DEFAULT_CALENDAR_ID = "default_calendar_id"
CONF_TIMEZONE = "timezone"
CONF_PREFERRED_SCOPE_TTL_MS = "preferred_scope_ttl_ms"
CONF_PROPAGATION = "propagation"
CONF_BASE_URL = "base_url"
CONF_TOKEN = "token"
CONF_REQUEST_INTERVAL = "request_interval"
CONF_TIMEOUT = "timeout"


def _timezone(value: Any) -> str:
    name = str(value).strip()
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError, OSError) as err:
        raise vol.Invalid(f"unknown timezone: {name}") from err
    return name


PROPAGATION_SCHEMA = vol.Schema(
    {
        vol.Required(CONF_BASE_URL): vol.All(str, vol.Url()),
        vol.Required(CONF_TOKEN): vol.All(str, vol.Length(min=1)),
        vol.Optional(CONF_REQUEST_INTERVAL, default=DEFAULT_THROTTLE_SECONDS): vol.All(
            vol.Coerce(float), vol.Range(min=0)
        ),
        vol.Optional(CONF_TIMEOUT, default=DEFAULT_REQUEST_TIMEOUT_SECONDS): vol.All(
            vol.Coerce(float), vol.Range(min=0, min_included=False)
        ),
    }
)

CONFIG_SCHEMA = vol.Schema(
    {
        vol.Optional(CONF_DEFAULT_CALENDAR_ID, default=DEFAULT_CALENDAR_ID): vol.All(
            str, vol.Length(min=1)
        ),
        vol.Optional(CONF_TIMEZONE, default=DEFAULT_TIMEZONE): _timezone,
        vol.Optional(
            CONF_PREFERRED_SCOPE_TTL_MS, default=DEFAULT_PREFERRED_SCOPE_TTL_MS
        ): vol.All(vol.Coerce(int), vol.Range(min=0)),
        vol.Optional(CONF_PROPAGATION): vol.Any(None, PROPAGATION_SCHEMA),
    }
)


@dataclass(frozen=True)
class PropagationConfig:
    """Connection settings for the external calendar API."""

    base_url: str
    token: str
    request_interval: float = DEFAULT_THROTTLE_SECONDS
    timeout: float = DEFAULT_REQUEST_TIMEOUT_SECONDS


@dataclass(frozen=True)
class CoreConfig:
    """Validated settings shared by the coordinator and the resolver."""

    default_calendar_id: str = DEFAULT_CALENDAR_ID
    timezone: str = DEFAULT_TIMEZONE
    preferred_scope_ttl_ms: int = DEFAULT_PREFERRED_SCOPE_TTL_MS
    propagation: PropagationConfig | None = None

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


def load_config(data: dict[str, Any] | None = None) -> CoreConfig:
    """Validate a plain settings dict.

    Raises:
        ConfigError: If the settings do not match ``CONFIG_SCHEMA``.
    """
    try:
        valid = CONFIG_SCHEMA(dict(data or {}))
    except vol.Invalid as err:
        raise ConfigError(f"Invalid configuration: {err}") from err

    propagation = valid.get(CONF_PROPAGATION)
    return CoreConfig(
        default_calendar_id=valid[CONF_DEFAULT_CALENDAR_ID],
        timezone=valid[CONF_TIMEZONE],
        preferred_scope_ttl_ms=valid[CONF_PREFERRED_SCOPE_TTL_MS],
        propagation=(
            PropagationConfig(
                base_url=propagation[CONF_BASE_URL].rstrip("/"),
                token=propagation[CONF_TOKEN],
                request_interval=propagation[CONF_REQUEST_INTERVAL],
                timeout=propagation[CONF_TIMEOUT],
            )
            if propagation
            else None
        ),
    )
