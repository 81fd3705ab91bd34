"""Service settings.

Settings are read from environment variables. A `.env` file at the repo root
is loaded first if it exists.
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

env_path = Path(__file__).resolve().parents[1] / ".env"
if env_path.exists():
    load_dotenv(env_path)


class TransportMode(str, Enum):
    """How the service reaches agent data."""
    DIRECT = "direct"
    NAVIGATE = "navigate"


DEFAULT_IDENTIFIER_URLS = [
    "https://rodeo-iad.amazon.com/{warehouse}/Search"
    "?_enabledColumns=on&enabledColumns=LPN&searchKey={key}",
]
DEFAULT_WEIGHT_URLS = [
    "https://fcresearch-na.aka.amazon.com/{warehouse}/results?s={key}",
]

# Default concurrency ceilings per transport mode
DEFAULT_CONCURRENCY = {
    TransportMode.DIRECT: 5,
    TransportMode.NAVIGATE: 1,
}


@dataclass
class WeightSettings:
    """Configuration for the batch weight pipeline."""
    transport_mode: TransportMode = TransportMode.DIRECT
    default_warehouse: str = "IND8"

    cache_ttl_seconds: float = 30 * 60
    ticket_ttl_seconds: float = 30.0
    content_timeout_seconds: float = 5.0
    content_poll_seconds: float = 0.2

    concurrency: Optional[int] = None  # None means the mode default
    http_timeout_seconds: float = 30.0
    auth_min_body_length: int = 64

    identifier_urls: List[str] = field(default_factory=lambda: list(DEFAULT_IDENTIFIER_URLS))
    weight_urls: List[str] = field(default_factory=lambda: list(DEFAULT_WEIGHT_URLS))

    # Substrings an agent location must contain to count for each role
    identifier_location_pattern: str = "rodeo"
    weight_location_pattern: str = "fcresearch"

    log_json: bool = False
    log_level: str = "INFO"

    @property
    def effective_concurrency(self) -> int:
        """Concurrency ceiling, falling back to the mode default."""
        if self.concurrency is not None:
            return self.concurrency
        return DEFAULT_CONCURRENCY[self.transport_mode]

    def validate(self) -> "WeightSettings":
        """Reject values the pipeline cannot run with."""
        if self.effective_concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        for name in ("cache_ttl_seconds", "ticket_ttl_seconds",
                     "content_timeout_seconds", "content_poll_seconds",
                     "http_timeout_seconds"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")
        if not self.identifier_urls or not self.weight_urls:
            raise ValueError("At least one identifier and one weight URL template is required")
        return self


def _env_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name)
    if not raw:
        return list(default)
    return [part.strip() for part in raw.split(",") if part.strip()]


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def load_settings() -> WeightSettings:
    """Build settings from environment variables.

    Reads:
    - WEIGHT_TRANSPORT_MODE: "direct" or "navigate"
    - WEIGHT_DEFAULT_WAREHOUSE: warehouse used when a caller omits one
    - WEIGHT_CACHE_TTL_SECONDS / WEIGHT_TICKET_TTL_SECONDS
    - WEIGHT_CONTENT_TIMEOUT_SECONDS / WEIGHT_CONTENT_POLL_SECONDS
    - WEIGHT_CONCURRENCY: overrides the mode default
    - WEIGHT_HTTP_TIMEOUT_SECONDS / WEIGHT_AUTH_MIN_BODY_LENGTH
    - WEIGHT_IDENTIFIER_URLS / WEIGHT_WEIGHT_URLS: comma-separated templates
    - WEIGHT_LOG_JSON / WEIGHT_LOG_LEVEL

    Raises:
        ValueError: If a value cannot be parsed or is out of range
    """
    mode_raw = os.getenv("WEIGHT_TRANSPORT_MODE", TransportMode.DIRECT.value).strip().lower()
    try:
        mode = TransportMode(mode_raw)
    except ValueError:
        raise ValueError(
            f"WEIGHT_TRANSPORT_MODE must be 'direct' or 'navigate', got '{mode_raw}'"
        )

    concurrency_raw = os.getenv("WEIGHT_CONCURRENCY")

    settings = WeightSettings(
        transport_mode=mode,
        default_warehouse=os.getenv("WEIGHT_DEFAULT_WAREHOUSE", "IND8"),
        cache_ttl_seconds=float(os.getenv("WEIGHT_CACHE_TTL_SECONDS", 30 * 60)),
        ticket_ttl_seconds=float(os.getenv("WEIGHT_TICKET_TTL_SECONDS", 30)),
        content_timeout_seconds=float(os.getenv("WEIGHT_CONTENT_TIMEOUT_SECONDS", 5)),
        content_poll_seconds=float(os.getenv("WEIGHT_CONTENT_POLL_SECONDS", 0.2)),
        concurrency=int(concurrency_raw) if concurrency_raw else None,
        http_timeout_seconds=float(os.getenv("WEIGHT_HTTP_TIMEOUT_SECONDS", 30)),
        auth_min_body_length=int(os.getenv("WEIGHT_AUTH_MIN_BODY_LENGTH", 64)),
        identifier_urls=_env_list("WEIGHT_IDENTIFIER_URLS", DEFAULT_IDENTIFIER_URLS),
        weight_urls=_env_list("WEIGHT_WEIGHT_URLS", DEFAULT_WEIGHT_URLS),
        identifier_location_pattern=os.getenv("WEIGHT_IDENTIFIER_LOCATION_PATTERN", "rodeo"),
        weight_location_pattern=os.getenv("WEIGHT_WEIGHT_LOCATION_PATTERN", "fcresearch"),
        log_json=_env_bool("WEIGHT_LOG_JSON"),
        log_level=os.getenv("WEIGHT_LOG_LEVEL", "INFO").upper(),
    )
    return settings.validate()
