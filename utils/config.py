"""Runtime configuration for capture and scene generation."""

import os
from dataclasses import dataclass, fields
from typing import Optional


DEFAULT_BASE_URL = "https://api.realfield.app/v1"
DEFAULT_PROMPT = "realistic indoor scene captured from center"

ENV_PREFIX = "ORBIT_"


@dataclass
class GenerationConfig:
    """Configuration for the capture + generation pipeline."""
    # API
    api_key: str = ""
    base_url: str = DEFAULT_BASE_URL
    request_timeout: float = 60.0  # seconds per HTTP request

    # Polling
    polling_interval: float = 5.0
    polling_timeout: float = 600.0

    # Upload encoding
    max_dimension: int = 1024
    jpeg_quality: int = 80  # 0.8
    export_quality: int = 90

    # Job
    prompt: Optional[str] = DEFAULT_PROMPT
    display_name: str = "Orbit Capture"

    # Capture
    target_count: int = 18
    tolerance: float = 8.0
    min_frames: int = 8

    @classmethod
    def from_env(cls, **overrides) -> "GenerationConfig":
        """
        Build a config from ORBIT_* environment variables.

        Explicit keyword overrides win over the environment; None overrides
        are ignored.
        """
        values = {}
        env_fields = {
            "api_key": ("API_KEY", str),
            "base_url": ("API_BASE_URL", str),
            "polling_interval": ("POLL_INTERVAL", float),
            "polling_timeout": ("POLL_TIMEOUT", float),
            "request_timeout": ("REQUEST_TIMEOUT", float),
            "prompt": ("PROMPT", str),
        }
        for name, (suffix, cast) in env_fields.items():
            var = ENV_PREFIX + suffix
            raw = os.getenv(var)
            if raw is None or raw == "":
                continue
            try:
                values[name] = cast(raw)
            except ValueError:
                raise ValueError(f"Invalid value for {var}: {raw!r}")

        known = {f.name for f in fields(cls)}
        for name, value in overrides.items():
            if name not in known:
                raise TypeError(f"Unknown config field: {name}")
            if value is not None:
                values[name] = value

        config = cls(**values)
        config.api_key = config.api_key.strip()
        config.base_url = config.base_url.rstrip("/")
        return config
