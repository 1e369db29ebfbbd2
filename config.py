"""
Configuration management for the API simulator
"""

import os
from typing import Optional, Tuple, Union
from dataclasses import dataclass
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# A fixed value or an inclusive (min, max) range
RangeSpec = Union[int, Tuple[int, int]]


@dataclass
class Config:
    # Network
    ADDRESS: str
    PORT: int
    LOG_LEVEL: str

    # Endpoints
    CHAT_COMPLETIONS_PATH: str
    RESPONSES_PATH: str

    # Generated content
    RESPONSE_LENGTH: RangeSpec

    # Fault injection
    ERROR_CODE: Optional[int]
    ERROR_RATE: Optional[int]
    SLOWDOWN: Optional[RangeSpec]

    # Quotas
    RPM: int
    RPM_WINDOW: int
    TPM: int
    TPM_WINDOW: int

    # Streaming
    STREAM_CHUNK_DELAY_MS: int


_CONFIG_INSTANCE: Optional[Config] = None


def parse_range(raw: Optional[str]) -> Optional[RangeSpec]:
    """Parse ``"N"`` or ``"min:max"``; returns ``None`` for an unset value."""
    if raw is None or not raw.strip():
        return None
    raw = raw.strip()
    if ":" in raw:
        low_raw, high_raw = raw.split(":", 1)
        try:
            low = int(low_raw.strip())
        except ValueError:
            low = 0
        try:
            high = int(high_raw.strip())
        except ValueError:
            high = 100
        low, high = max(0, low), max(0, high)
        if low > high:
            low, high = high, low
        return (low, high)
    try:
        return max(0, int(raw))
    except ValueError:
        return 0


def _optional_int(var: str) -> Optional[int]:
    raw = os.getenv(var)
    if raw is None or not raw.strip():
        return None
    try:
        return int(raw.strip())
    except ValueError:
        return None


def _int(var: str, default: int) -> int:
    value = _optional_int(var)
    return default if value is None else value


def _build_config() -> Config:
    """Create a new ``Config`` instance from environment variables."""

    error_rate = _optional_int("ERROR_RATE")
    if error_rate is not None:
        error_rate = max(0, min(100, error_rate))

    response_length = parse_range(os.getenv("RESPONSE_LENGTH", "250"))

    return Config(
        # Network
        ADDRESS=os.getenv("ADDRESS", "127.0.0.1"),
        PORT=_int("PORT", 8000),
        LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO").upper(),

        # Endpoints
        CHAT_COMPLETIONS_PATH=os.getenv("CHAT_COMPLETIONS_PATH", "/v1/chat/completions"),
        RESPONSES_PATH=os.getenv("RESPONSES_PATH", "/v1/responses"),

        # Generated content
        RESPONSE_LENGTH=0 if response_length is None else response_length,

        # Fault injection
        ERROR_CODE=_optional_int("ERROR_CODE"),
        ERROR_RATE=error_rate,
        SLOWDOWN=parse_range(os.getenv("SLOWDOWN")),

        # Quotas
        RPM=max(0, _int("RPM", 500)),
        RPM_WINDOW=max(1, _int("RPM_WINDOW", 60)),
        TPM=max(0, _int("TPM", 30000)),
        TPM_WINDOW=max(1, _int("TPM_WINDOW", 60)),

        # Streaming
        STREAM_CHUNK_DELAY_MS=max(0, _int("STREAM_CHUNK_DELAY_MS", 20)),
    )


def get_config() -> Config:
    """Return the shared configuration object."""

    global _CONFIG_INSTANCE
    if _CONFIG_INSTANCE is None:
        _CONFIG_INSTANCE = _build_config()
    return _CONFIG_INSTANCE


def reset_config() -> Config:
    """Reload configuration from the environment."""

    global _CONFIG_INSTANCE
    _CONFIG_INSTANCE = _build_config()
    return _CONFIG_INSTANCE
