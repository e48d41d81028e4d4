# config.py

import os
from dataclasses import dataclass
from typing import Optional

# --- Search Constants ---
# Delay before a typed query is searched; new keystrokes restart it
FIND_TIMEOUT_MS: int = 250

# Report match counts page by page instead of once the scan is over
UPDATE_MATCHES_COUNT_ON_PROGRESS: bool = True

# --- Logging ---
LOG_LEVEL: str = "INFO"
LOG_FORMAT: str = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"
LOG_MAX_BYTES: int = 1_000_000
LOG_BACKUP_COUNT: int = 3


@dataclass
class SearchConfig:
    """Settings of the find controller."""

    find_timeout_ms: int = FIND_TIMEOUT_MS
    update_matches_count_on_progress: bool = UPDATE_MATCHES_COUNT_ON_PROGRESS
    log_level: str = LOG_LEVEL
    log_file: Optional[str] = None

    @classmethod
    def from_env(cls) -> "SearchConfig":
        """
        Build a config, overriding defaults from the environment.

        Recognized variables: INKFIND_FIND_TIMEOUT_MS, INKFIND_LOG_LEVEL,
        INKFIND_LOG_FILE.
        """
        config = cls()

        timeout = os.getenv("INKFIND_FIND_TIMEOUT_MS")
        if timeout:
            try:
                config.find_timeout_ms = max(0, int(timeout))
            except ValueError:
                raise ValueError(
                    f"INKFIND_FIND_TIMEOUT_MS must be an integer, got {timeout!r}"
                ) from None

        level = os.getenv("INKFIND_LOG_LEVEL")
        if level:
            config.log_level = level.upper()

        config.log_file = os.getenv("INKFIND_LOG_FILE") or None
        return config
