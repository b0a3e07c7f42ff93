import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv

from library_errors import ConfigurationError

load_dotenv()

HANDOFF_PROPAGATE = "propagate"
HANDOFF_SKIP = "skip"
HANDOFF_POLICIES = (HANDOFF_PROPAGATE, HANDOFF_SKIP)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class Settings:
    # Logging
    log_level: str = os.getenv("LIBRARY_LOG_LEVEL", "INFO")

    # What happens when a returned book cannot go to the head of its queue
    handoff_policy: str = os.getenv("LIBRARY_HANDOFF_POLICY", HANDOFF_PROPAGATE)

    def __post_init__(self) -> None:
        self.log_level = self.log_level.strip().upper()
        self.handoff_policy = self.handoff_policy.strip().lower()

        if self.log_level not in LOG_LEVELS:
            raise ConfigurationError(
                f"Unsupported log level: {self.log_level!r} (expected one of {', '.join(LOG_LEVELS)})"
            )
        if self.handoff_policy not in HANDOFF_POLICIES:
            raise ConfigurationError(
                f"Unsupported handoff policy: {self.handoff_policy!r} "
                f"(expected one of {', '.join(HANDOFF_POLICIES)})"
            )

    @property
    def log_level_value(self) -> int:
        return logging.getLevelName(self.log_level)

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the current environment instead of import-time defaults."""
        return cls(
            log_level=os.getenv("LIBRARY_LOG_LEVEL", "INFO"),
            handoff_policy=os.getenv("LIBRARY_HANDOFF_POLICY", HANDOFF_PROPAGATE),
        )


settings = Settings()
