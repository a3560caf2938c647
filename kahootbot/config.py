"""
Client configuration.

Settings come from keyword arguments or from KAHOOTBOT_* environment
variables (see ClientConfig.from_env). Nothing here is persisted.
"""

from __future__ import annotations
from dataclasses import dataclass, field
import os


DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0 Safari/537.36"
)


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int | None) -> int | None:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    if raw.strip().lower() in {"none", "unlimited"}:
        return None
    return int(raw)


def _env_count(name: str, default: int) -> int:
    """A finite, non-negative integer; "unlimited" is not accepted."""
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    value = int(raw)
    if value < 0:
        raise ValueError(f"{name} must not be negative: {raw!r}")
    return value


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return float(raw)


@dataclass
class RetryPolicy:
    """
    How the poll loop reacts to transport failures on connect.

    max_consecutive_failures=None keeps polling forever (each failure is
    still logged with its count). Backoff grows geometrically from
    backoff_seconds and is capped at max_backoff_seconds.
    """
    max_consecutive_failures: int | None = 5
    backoff_seconds: float = 0.5
    backoff_factor: float = 2.0
    max_backoff_seconds: float = 10.0

    def delay_for(self, attempt: int) -> float:
        """Delay before the next connect after `attempt` consecutive failures."""
        if attempt <= 0:
            return 0.0
        delay = self.backoff_seconds * (self.backoff_factor ** (attempt - 1))
        return min(delay, self.max_backoff_seconds)

    def exhausted(self, attempt: int) -> bool:
        if self.max_consecutive_failures is None:
            return False
        return attempt >= self.max_consecutive_failures


@dataclass
class ClientConfig:
    """Settings shared by every session created from it."""
    base_url: str = "https://kahoot.it"
    host: str = "kahoot.it"
    user_agent: str = DEFAULT_USER_AGENT

    # Device metadata reported with each answer
    screen_width: int = 1337
    screen_height: int = 1337
    lag_ms: int = 22

    # Long-poll advice sent on handshake (milliseconds)
    advice_timeout_ms: int = 60000
    advice_interval_ms: int = 0

    # Pause between connect cycles (seconds)
    poll_interval: float = 0.05

    # Socket timeout; must exceed the advice timeout
    request_timeout: float = 65.0
    transport_retries: int = 3

    # Activate the session after login even if the server rejected it
    optimistic_login: bool = True

    retry: RetryPolicy = field(default_factory=RetryPolicy)

    @property
    def cometd_root(self) -> str:
        return self.base_url.rstrip("/") + "/cometd"

    @classmethod
    def from_env(cls) -> ClientConfig:
        """Build a config from KAHOOTBOT_* environment variables."""
        defaults = cls()
        retry = RetryPolicy(
            max_consecutive_failures=_env_int(
                "KAHOOTBOT_MAX_CONNECT_FAILURES",
                defaults.retry.max_consecutive_failures,
            ),
            backoff_seconds=_env_float(
                "KAHOOTBOT_BACKOFF_SECONDS", defaults.retry.backoff_seconds
            ),
            backoff_factor=_env_float(
                "KAHOOTBOT_BACKOFF_FACTOR", defaults.retry.backoff_factor
            ),
            max_backoff_seconds=_env_float(
                "KAHOOTBOT_MAX_BACKOFF_SECONDS", defaults.retry.max_backoff_seconds
            ),
        )
        return cls(
            base_url=os.getenv("KAHOOTBOT_BASE_URL", defaults.base_url),
            host=os.getenv("KAHOOTBOT_HOST", defaults.host),
            user_agent=os.getenv("KAHOOTBOT_USER_AGENT", defaults.user_agent),
            poll_interval=_env_float("KAHOOTBOT_POLL_INTERVAL", defaults.poll_interval),
            request_timeout=_env_float(
                "KAHOOTBOT_REQUEST_TIMEOUT", defaults.request_timeout
            ),
            transport_retries=_env_count(
                "KAHOOTBOT_TRANSPORT_RETRIES", defaults.transport_retries
            ),
            optimistic_login=_env_bool(
                "KAHOOTBOT_OPTIMISTIC_LOGIN", defaults.optimistic_login
            ),
            retry=retry,
        )
