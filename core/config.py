"""
====================================
Configuration management for buildsqlx.
====================================

Loads all configuration from environment variables (.env file) and provides
a centralized Config singleton for library-wide access.

The configuration system covers:
- The default driver name handed to the connection registry
- How many idle builders a connection keeps for reuse
- Logging level, file output and console colors

Example:
    >>> from core.config import config
    >>>
    >>> print(f"Driver: {config.driver}, pool size: {config.pool_size}")
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load environment variables from .env file
env_path = Path(__file__).parent.parent / '.env'
load_dotenv(dotenv_path=env_path)

_TRUTHY = ('1', 'true', 'yes', 'on')


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUTHY


@dataclass
class BuilderConfig:
    """Statement builder settings.

    Attributes:
        driver: Default driver name used by get_connection()
        pool_size: Maximum number of idle builders kept per connection
    """

    driver: str
    pool_size: int

    def __post_init__(self):
        if not self.driver:
            raise ValueError("driver must be a non-empty string")
        if self.pool_size < 0:
            raise ValueError(f"pool_size must be >= 0, got {self.pool_size}")


@dataclass
class LoggingConfig:
    """Logging settings.

    Attributes:
        level: Logging level name (DEBUG/INFO/WARNING/ERROR/CRITICAL)
        log_file: Optional log file name
        log_dir: Directory for the log file
        use_colors: Colored console output
        auto_setup: Configure root logging when core.logger is imported
    """

    level: str
    log_file: Optional[str]
    log_dir: str
    use_colors: bool
    auto_setup: bool


class Config:
    """Centralized configuration manager.

    Attributes:
        builder: BuilderConfig instance
        logging: LoggingConfig instance

    Example:
        >>> config = Config()
        >>> config.driver
        'mysql'
    """

    def __init__(self):
        """Initialize configuration from environment variables."""
        self.builder = BuilderConfig(
            driver=os.getenv('BUILDSQLX_DRIVER', 'mysql'),
            pool_size=int(os.getenv('BUILDSQLX_POOL_SIZE', '8'))
        )

        self.logging = LoggingConfig(
            level=os.getenv('BUILDSQLX_LOG_LEVEL', 'INFO').upper(),
            log_file=os.getenv('BUILDSQLX_LOG_FILE') or None,
            log_dir=os.getenv('BUILDSQLX_LOG_DIR', 'logs'),
            use_colors=_env_bool('BUILDSQLX_LOG_COLORS', True),
            auto_setup=_env_bool('BUILDSQLX_LOG_AUTO_SETUP', False)
        )

    @property
    def driver(self) -> str:
        """Get the default driver name."""
        return self.builder.driver

    @property
    def pool_size(self) -> int:
        """Get the idle builder pool size."""
        return self.builder.pool_size

    @property
    def log_level(self) -> str:
        """Get the configured logging level name."""
        return self.logging.level


# Global configuration instance
config = Config()
