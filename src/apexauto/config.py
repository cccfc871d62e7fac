"""Client configuration for apexauto."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from apexauto._constants import DEFAULT_SCHEMA, DEFAULT_STORAGE_BUCKET, DEFAULT_STORAGE_PREFIX


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class ApexConfig:
    """Client configuration.

    Parameters
    ----------
    url : str
        Backend project URL (e.g. ``"https://xyz.supabase.co"``).
    api_key : str
        Anonymous/service API key sent as ``apikey`` and bearer token.
    schema : str
        Database schema exposed through the REST endpoint.
    storage_bucket : str
        Bucket used for uploaded images.
    storage_prefix : str
        Object path prefix for uploaded images.
    debounce_delay : float
        Quiet period in seconds before an edited buffer is written.
        Every mutation restarts the timer.
    write_timeout : float
        Upper bound in seconds for a single remote write issued by an
        editor.  A write exceeding it is reported as failed.
    request_timeout : float
        Total timeout in seconds for each HTTP request.
    realtime_enabled : bool
        Start the websocket change listener when the client opens.
    realtime_heartbeat : float
        Seconds between realtime heartbeat frames.
    auto_tagging : bool
        Derive tags for newly created vehicles.
    fallback_to_samples : bool
        Serve the built-in sample inventory when the vehicle table
        cannot be read or is empty.
    """

    url: str = ""
    api_key: str = ""
    schema: str = DEFAULT_SCHEMA
    storage_bucket: str = DEFAULT_STORAGE_BUCKET
    storage_prefix: str = DEFAULT_STORAGE_PREFIX
    debounce_delay: float = 1.0
    write_timeout: float = 10.0
    request_timeout: float = 30.0
    realtime_enabled: bool = True
    realtime_heartbeat: float = 30.0
    auto_tagging: bool = True
    fallback_to_samples: bool = True

    @property
    def is_configured(self) -> bool:
        """Whether both the backend URL and API key are present."""
        return bool(self.url.strip() and self.api_key.strip())

    @property
    def rest_url(self) -> str:
        return f"{self.url.rstrip('/')}/rest/v1"

    @property
    def storage_url(self) -> str:
        return f"{self.url.rstrip('/')}/storage/v1"

    @property
    def realtime_url(self) -> str:
        base = self.url.rstrip("/")
        if base.startswith("https://"):
            base = "wss://" + base[len("https://") :]
        elif base.startswith("http://"):
            base = "ws://" + base[len("http://") :]
        return f"{base}/realtime/v1/websocket"

    @classmethod
    def from_env(cls, **overrides: Any) -> ApexConfig:
        """Create configuration from environment variables.

        Reads ``APEX_URL``, ``APEX_API_KEY`` and the optional ``APEX_*``
        tuning variables. Explicit keyword arguments override environment
        values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        ApexConfig
            Populated configuration.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "APEX_URL": "url",
            "APEX_API_KEY": "api_key",
            "APEX_SCHEMA": "schema",
            "APEX_STORAGE_BUCKET": "storage_bucket",
            "APEX_STORAGE_PREFIX": "storage_prefix",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        _ENV_FLOAT_MAP = {
            "APEX_DEBOUNCE_DELAY": "debounce_delay",
            "APEX_WRITE_TIMEOUT": "write_timeout",
            "APEX_REQUEST_TIMEOUT": "request_timeout",
            "APEX_REALTIME_HEARTBEAT": "realtime_heartbeat",
        }
        for env_key, field_name in _ENV_FLOAT_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = float(val)

        if "realtime_enabled" not in overrides:
            config_kwargs["realtime_enabled"] = _env_bool(env.get("APEX_REALTIME_ENABLED"), True)

        if "auto_tagging" not in overrides:
            config_kwargs["auto_tagging"] = _env_bool(env.get("APEX_AUTO_TAGGING"), True)

        if "fallback_to_samples" not in overrides:
            config_kwargs["fallback_to_samples"] = _env_bool(env.get("APEX_FALLBACK_TO_SAMPLES"), True)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
