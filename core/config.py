from __future__ import annotations

import os
from dataclasses import dataclass, fields

DEFAULT_API_BASE_URL = "https://api.mcsrvstat.us/3"
DEFAULT_REQUEST_TIMEOUT = 10.0
DEFAULT_CONCURRENCY_LIMIT = 20
DEFAULT_RETRY_ATTEMPTS = 2
DEFAULT_RETRY_DELAY = 2.0
# mcsrvstat.us caches responses for five minutes
DEFAULT_FRESHNESS_WINDOW = 300.0
DEFAULT_SCHEDULER_DRIFT_BUFFER = 10.0
DEFAULT_BATCH_SIZE = 5
DEFAULT_INTER_BATCH_DELAY = 1.0
DEFAULT_MAX_SERVERS_PER_SWEEP = 100
DEFAULT_USER_AGENT = "ServerStatusPoller/1.0"

ENV_PREFIX = "STATUS_POLLER_"


@dataclass(frozen=True)
class PollerSettings:
    """Tunables for the polling subsystem. Durations are in seconds."""

    api_base_url: str = DEFAULT_API_BASE_URL
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    max_concurrent_polls: int = DEFAULT_CONCURRENCY_LIMIT
    retry_attempts: int = DEFAULT_RETRY_ATTEMPTS
    retry_delay: float = DEFAULT_RETRY_DELAY
    freshness_window: float = DEFAULT_FRESHNESS_WINDOW
    scheduler_drift_buffer: float = DEFAULT_SCHEDULER_DRIFT_BUFFER
    batch_size: int = DEFAULT_BATCH_SIZE
    inter_batch_delay: float = DEFAULT_INTER_BATCH_DELAY
    max_servers_per_sweep: int = DEFAULT_MAX_SERVERS_PER_SWEEP
    user_agent: str = DEFAULT_USER_AGENT

    def __post_init__(self) -> None:
        if self.max_concurrent_polls < 1:
            raise ValueError("max_concurrent_polls must be at least 1")
        if self.retry_attempts < 0:
            raise ValueError("retry_attempts must not be negative")
        if self.batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        if self.freshness_window <= 0:
            raise ValueError("freshness_window must be positive")
        if self.request_timeout <= 0:
            raise ValueError("request_timeout must be positive")
        if self.retry_delay < 0:
            raise ValueError("retry_delay must not be negative")
        if self.inter_batch_delay < 0:
            raise ValueError("inter_batch_delay must not be negative")
        if self.scheduler_drift_buffer < 0:
            raise ValueError("scheduler_drift_buffer must not be negative")
        if self.max_servers_per_sweep < 0:
            raise ValueError("max_servers_per_sweep must not be negative")

    @property
    def scheduler_interval(self) -> float:
        """Default sweep cadence.

        The buffer keeps servers polled at the previous tick from landing a
        second inside the freshness window when the next tick selects.
        """
        return self.freshness_window + self.scheduler_drift_buffer

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> PollerSettings:
        """Build settings from ``STATUS_POLLER_<FIELD>`` variables.

        Unset variables keep their defaults.
        """
        env = os.environ if environ is None else environ
        overrides: dict[str, object] = {}

        for f in fields(cls):
            name = ENV_PREFIX + f.name.upper()
            raw = env.get(name)
            if raw is None or raw == "":
                continue
            convert = {"int": int, "float": float}.get(f.type, str)
            try:
                overrides[f.name] = convert(raw)
            except ValueError as exc:
                raise ValueError(f"Invalid value for {name}: {raw!r}") from exc

        return cls(**overrides)
