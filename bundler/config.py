"""
Configuration management for the bundle submission client.

Handles loading and saving configuration from JSON files, and loading
it from the environment variables the Block Engine tooling uses.

Example:
    ```python
    from bundler.config import Config

    # Load existing config
    config = Config.load("/data/config.json")

    # Or build it from JITO_* environment variables
    config = Config.from_env()

    # Create and save new config
    config = Config(
        endpoints=["https://frankfurt.mainnet.block-engine.jito.wtf"],
        tip_accounts_min_interval_ms=1500,
    )
    config.save("/data/config.json")
    ```
"""

import json
import os
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Any, Mapping

from .models import CallCategory


# JSON-RPC path served by the Block Engine
BUNDLES_PATH = "/api/v1/bundles"

# Default minimum intervals between calls, per category (milliseconds).
# Bundle submission is on the critical path, so it is not throttled.
DEFAULT_SEND_BUNDLE_MIN_INTERVAL_MS = 0
DEFAULT_TIP_ACCOUNTS_MIN_INTERVAL_MS = 1200
DEFAULT_OTHER_MIN_INTERVAL_MS = 250

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BACKOFF_BASE = 1.0
DEFAULT_REQUEST_TIMEOUT = 10.0

ENV_ENDPOINTS = "JITO_BLOCK_ENGINE_URLS"
ENV_SEND_BUNDLE_MIN_INTERVAL_MS = "JITO_SEND_BUNDLE_MIN_INTERVAL_MS"
ENV_TIP_ACCOUNTS_MIN_INTERVAL_MS = "JITO_TIP_ACCOUNTS_MIN_INTERVAL_MS"
ENV_OTHER_MIN_INTERVAL_MS = "JITO_OTHER_MIN_INTERVAL_MS"


def normalize_endpoint(url: str) -> str:
    """
    Turn a base URL or a full bundles URL into the JSON-RPC URL.

    Args:
        url: Either a host like `https://ny.mainnet.block-engine.jito.wtf`
            or a full URL ending with `/api/v1/bundles`.

    Returns:
        The URL ending with `/api/v1/bundles`, or "" for blank input.

    Example:
        ```python
        normalize_endpoint(" https://ny.block-engine.example/ ")
        # "https://ny.block-engine.example/api/v1/bundles"
        ```
    """
    url = url.strip().rstrip("/")
    if not url:
        return ""
    if not url.endswith(BUNDLES_PATH):
        url = f"{url}{BUNDLES_PATH}"
    return url


def normalize_endpoints(urls: list[str] | tuple[str, ...]) -> tuple[str, ...]:
    """
    Normalize, drop blanks and deduplicate endpoints, keeping first occurrence.

    The order of the result is the fallback priority.
    """
    seen: dict[str, None] = {}
    for url in urls:
        normalized = normalize_endpoint(url)
        if normalized:
            seen.setdefault(normalized, None)
    return tuple(seen)


def split_endpoints(raw: str) -> list[str]:
    """Split a comma-separated endpoint list."""
    return [part.strip() for part in raw.split(",") if part.strip()]


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    try:
        value = int(env[name])
    except (KeyError, ValueError):
        return default
    return value if value >= 0 else default


@dataclass
class Config:
    """
    Client configuration.

    Attributes:
        endpoints: Block Engine base URLs or full bundles URLs, in
            fallback priority order.
        send_bundle_min_interval_ms: Minimum gap between `sendBundle` calls.
        tip_accounts_min_interval_ms: Minimum gap between `getTipAccounts` calls.
        other_min_interval_ms: Minimum gap between any other calls
            (`getBundleStatuses`, tip floor queries).
        max_attempts: Maximum HTTP attempts against one endpoint.
        backoff_base: Delay in seconds before the first retry; doubles after.
        request_timeout: Hard limit in seconds for a single HTTP attempt.
        tip_accounts_ttl: Seconds to reuse a fetched tip account list.
            Zero disables caching.
        landed_poll_interval: Seconds between status polls while waiting
            for a bundle to land.
    """

    endpoints: list[str] = field(default_factory=list)
    send_bundle_min_interval_ms: int = DEFAULT_SEND_BUNDLE_MIN_INTERVAL_MS
    tip_accounts_min_interval_ms: int = DEFAULT_TIP_ACCOUNTS_MIN_INTERVAL_MS
    other_min_interval_ms: int = DEFAULT_OTHER_MIN_INTERVAL_MS
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    backoff_base: float = DEFAULT_BACKOFF_BASE
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    tip_accounts_ttl: float = 0.0
    landed_poll_interval: float = 0.2

    def save(self, path: str | Path) -> None:
        """
        Save configuration to JSON file.

        Args:
            path: Path to config file.
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(asdict(self), indent=2))

    @classmethod
    def load(cls, path: str | Path) -> "Config":
        """
        Load configuration from JSON file.

        If file doesn't exist, returns default config. Missing keys
        fall back to their defaults.

        Args:
            path: Path to config file.

        Returns:
            Loaded or default Config instance.

        Example:
            ```python
            config = Config.load("/data/config.json")
            ```
        """
        path = Path(path)
        if not path.exists():
            return cls()

        data = json.loads(path.read_text())
        endpoints = data.get("endpoints", [])
        if isinstance(endpoints, str):
            endpoints = split_endpoints(endpoints)
        return cls(
            endpoints=list(endpoints),
            send_bundle_min_interval_ms=data.get(
                "send_bundle_min_interval_ms", DEFAULT_SEND_BUNDLE_MIN_INTERVAL_MS
            ),
            tip_accounts_min_interval_ms=data.get(
                "tip_accounts_min_interval_ms", DEFAULT_TIP_ACCOUNTS_MIN_INTERVAL_MS
            ),
            other_min_interval_ms=data.get(
                "other_min_interval_ms", DEFAULT_OTHER_MIN_INTERVAL_MS
            ),
            max_attempts=data.get("max_attempts", DEFAULT_MAX_ATTEMPTS),
            backoff_base=data.get("backoff_base", DEFAULT_BACKOFF_BASE),
            request_timeout=data.get("request_timeout", DEFAULT_REQUEST_TIMEOUT),
            tip_accounts_ttl=data.get("tip_accounts_ttl", 0.0),
            landed_poll_interval=data.get("landed_poll_interval", 0.2),
        )

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "Config":
        """
        Build configuration from `JITO_*` environment variables.

        Unparseable or negative interval values fall back to their defaults.

        Args:
            env: Mapping to read instead of `os.environ` (for tests).

        Returns:
            Config instance.
        """
        env = os.environ if env is None else env
        return cls(
            endpoints=split_endpoints(env.get(ENV_ENDPOINTS, "")),
            send_bundle_min_interval_ms=_env_int(
                env, ENV_SEND_BUNDLE_MIN_INTERVAL_MS, DEFAULT_SEND_BUNDLE_MIN_INTERVAL_MS
            ),
            tip_accounts_min_interval_ms=_env_int(
                env, ENV_TIP_ACCOUNTS_MIN_INTERVAL_MS, DEFAULT_TIP_ACCOUNTS_MIN_INTERVAL_MS
            ),
            other_min_interval_ms=_env_int(
                env, ENV_OTHER_MIN_INTERVAL_MS, DEFAULT_OTHER_MIN_INTERVAL_MS
            ),
        )

    def is_valid(self) -> bool:
        """
        Check if config has required fields.

        Returns:
            True if at least one endpoint survives normalization.
        """
        return bool(self.get_endpoints())

    def get_endpoints(self) -> tuple[str, ...]:
        """
        Get the normalized endpoint list.

        Returns:
            Tuple of URLs like "https://host/api/v1/bundles", deduplicated.
        """
        return normalize_endpoints(self.endpoints)

    def min_interval_ms(self, category: CallCategory) -> int:
        """Minimum interval configured for a call category."""
        intervals: dict[CallCategory, Any] = {
            CallCategory.SUBMIT_BUNDLE: self.send_bundle_min_interval_ms,
            CallCategory.TIP_ACCOUNTS: self.tip_accounts_min_interval_ms,
            CallCategory.OTHER: self.other_min_interval_ms,
        }
        return int(intervals[category])
