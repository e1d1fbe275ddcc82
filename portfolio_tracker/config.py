from dataclasses import dataclass
import os
from dotenv import load_dotenv
import logging
import sys
from typing import Optional
import structlog

from portfolio_tracker.exceptions import ConfigurationError

# Load environment variables early
load_dotenv()

# Step 1: Configure stdlib logging to use stderr
logging.basicConfig(
    format='%(asctime)s [%(levelname)-8s] %(message)s',
    stream=sys.stderr,
    level=logging.INFO,
    force=True
)

# Step 2: Configure structlog
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.KeyValueRenderer(key_order=['timestamp', 'level', 'event']),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = logging.getLogger(__name__)

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _get_env_var(var: str, default: Optional[str] = None) -> str:
    """Get environment variable, stripped, falling back to default."""
    value = os.environ.get(var, default)
    return (value or "").strip()


@dataclass
class Config:
    """Configuration for the portfolio tracker core."""

    default_currency: str = _get_env_var("DEFAULT_CURRENCY", "USD")
    default_period: str = _get_env_var("DEFAULT_PERIOD", "6M")

    # Per-field edits are saved once the user stops typing for this long
    autosave_delay_seconds: float = float(_get_env_var("AUTOSAVE_DELAY_SECONDS", "1.0") or "1.0")

    log_level: str = _get_env_var("LOG_LEVEL", "INFO")

    def __post_init__(self):
        self.default_currency = (self.default_currency or "USD").upper()
        self.log_level = self.log_level.upper()

        if self.log_level not in VALID_LOG_LEVELS:
            raise ConfigurationError(
                f"Invalid log level: {self.log_level}",
                config_key="LOG_LEVEL",
                expected=", ".join(VALID_LOG_LEVELS)
            )

        if self.autosave_delay_seconds < 0:
            raise ConfigurationError(
                f"Autosave delay cannot be negative, got {self.autosave_delay_seconds}",
                config_key="AUTOSAVE_DELAY_SECONDS",
                expected=">= 0"
            )

        # Set logging level
        log_level = getattr(logging, self.log_level)
        logging.getLogger().setLevel(log_level)
        for name in logging.root.manager.loggerDict:
            logging.getLogger(name).setLevel(log_level)


config = Config()
