"""Environment settings."""

import os


class Settings:
    """Application settings from environment variables."""

    @staticmethod
    def get(key: str, default: str = "") -> str:
        """Environment variable value, or default when unset or empty."""
        return os.getenv(key) or default

    @staticmethod
    def log_level() -> str:
        """Log level from LOG_LEVEL, INFO when unset or unknown."""
        level = Settings.get("LOG_LEVEL", "INFO").upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            return "INFO"
        return level
