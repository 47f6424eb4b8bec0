"""
Transaction History - Configuration.

============================================================
PURPOSE
============================================================
All runtime configuration for the aggregation pipeline.

- Values come from the process environment (.env is loaded first)
- Provider credentials are looked up by name through a CredentialSource
- Invalid numeric values fall back to defaults with a warning

============================================================
"""

import logging
import os
from dataclasses import dataclass
from typing import Callable, Mapping, Optional, Protocol, TypeVar

from dotenv import load_dotenv


logger = logging.getLogger(__name__)

T = TypeVar("T")


# ============================================================
# CREDENTIAL SOURCE
# ============================================================

class CredentialSource(Protocol):
    """Key-value lookup of provider credentials by name."""

    def get(self, name: str) -> Optional[str]:
        ...


class EnvCredentialSource:
    """
    Reads credentials from the environment.

    Pass an explicit mapping to bypass os.environ (tests, embedding).
    """

    def __init__(
        self,
        environ: Optional[Mapping[str, str]] = None,
        load_env_file: bool = True,
    ) -> None:
        if environ is None and load_env_file:
            load_dotenv()
        self._environ = environ

    def get(self, name: str) -> Optional[str]:
        environ = self._environ if self._environ is not None else os.environ
        value = environ.get(name)
        if value is None:
            return None
        value = value.strip()
        return value or None


# ============================================================
# PIPELINE SETTINGS
# ============================================================

@dataclass(frozen=True)
class TxHistorySettings:
    """
    Pipeline settings.

    Cache TTLs are fixed: the first page changes with every new transfer,
    later pages hang off a fixed upstream cursor.
    """

    max_page_size: int = 100
    """Upper bound applied to every requested page size."""

    default_from_block: str = "0x0"
    """Block the upstream scan starts from when the caller gives none."""

    request_timeout_seconds: float = 30.0
    """Total timeout for one upstream HTTP call."""

    cache_max_entries: int = 1000
    """Capacity of the in-memory response cache."""

    first_page_ttl_seconds: int = 60
    paged_ttl_seconds: int = 300

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        load_env_file: bool = True,
    ) -> "TxHistorySettings":
        """Build settings from TX_HISTORY_* environment variables."""
        if environ is None:
            if load_env_file:
                load_dotenv()
            environ = os.environ

        return cls(
            max_page_size=_read_env(
                environ, "TX_HISTORY_MAX_PAGE_SIZE", int, cls.max_page_size, positive=True
            ),
            default_from_block=(
                environ.get("TX_HISTORY_DEFAULT_FROM_BLOCK", "").strip()
                or cls.default_from_block
            ),
            request_timeout_seconds=_read_env(
                environ, "TX_HISTORY_REQUEST_TIMEOUT", float,
                cls.request_timeout_seconds, positive=True,
            ),
            cache_max_entries=_read_env(
                environ, "TX_HISTORY_CACHE_MAX_ENTRIES", int,
                cls.cache_max_entries, positive=True,
            ),
        )


def _read_env(
    environ: Mapping[str, str],
    name: str,
    parse: Callable[[str], T],
    default: T,
    positive: bool = False,
) -> T:
    raw = environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = parse(raw.strip())
    except ValueError:
        logger.warning(f"[config] Invalid {name}={raw!r}, using default {default}")
        return default
    if positive and value <= 0:
        logger.warning(f"[config] {name} must be positive, using default {default}")
        return default
    return value
