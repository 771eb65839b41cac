"""
Scheduler configuration management.

Handles loading, saving, and validating the settings shared by every
schedule a process creates: expression matching mode, late-tick
tolerance, and logging.
"""

import json
import logging
import os
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Optional, List

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

_TRUE_VALUES = ('1', 'true', 'yes', 'on')


def _get_data_dir() -> Path:
    """Get the base directory for cadence files."""
    data_dir = os.environ.get('CADENCE_DATA_DIR')
    if data_dir:
        return Path(data_dir).expanduser()
    return Path.home() / ".cadence"


def _get_default_log_file() -> str:
    """Get default log file path from environment or default."""
    if os.environ.get('CADENCE_LOG_DIR'):
        return str(Path(os.environ['CADENCE_LOG_DIR']).expanduser() / "cadence.log")
    return str(_get_data_dir() / "logs" / "cadence.log")


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    file: str = None  # Set dynamically in __post_init__

    def __post_init__(self):
        if self.file is None:
            self.file = _get_default_log_file()


class SchedulerConfig:
    """
    Scheduler configuration manager.

    Configuration path priority:
    1. Explicit config_path argument
    2. CADENCE_CONFIG_PATH environment variable
    3. Default: ~/.cadence/config.json

    Environment variables CADENCE_STRICT_EXPRESSIONS and
    CADENCE_MISFIRE_GRACE_TIME override values read from the file.
    """

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize scheduler configuration.

        Args:
            config_path: Path to configuration file. If None, uses env var or default.
        """
        if config_path:
            self.config_path = Path(config_path).expanduser()
        elif os.environ.get('CADENCE_CONFIG_PATH'):
            self.config_path = Path(os.environ['CADENCE_CONFIG_PATH']).expanduser()
        else:
            self.config_path = _get_data_dir() / "config.json"

        self.strict_expressions: bool = True
        self.misfire_grace_time: Optional[int] = None
        self.logging: LoggingConfig = LoggingConfig()

        if self.config_path.exists():
            self.load()
        else:
            logger.debug(f"No config found at {self.config_path}, using defaults")

        self._apply_environment()

    def load(self):
        """Load configuration from JSON file."""
        try:
            with open(self.config_path, 'r') as f:
                data = json.load(f)

            self.strict_expressions = bool(data.get('strict_expressions', True))
            self.misfire_grace_time = data.get('misfire_grace_time')

            if 'logging' in data:
                self.logging = LoggingConfig(**data['logging'])

            logger.info(f"Loaded configuration from {self.config_path}")

        except Exception as e:
            logger.error(f"Failed to load config from {self.config_path}: {e}")
            raise

    def _apply_environment(self):
        """Apply environment variable overrides."""
        strict = os.environ.get('CADENCE_STRICT_EXPRESSIONS')
        if strict is not None:
            self.strict_expressions = strict.strip().lower() in _TRUE_VALUES

        grace = os.environ.get('CADENCE_MISFIRE_GRACE_TIME')
        if grace is not None:
            try:
                self.misfire_grace_time = int(grace) if grace.strip() else None
            except ValueError:
                logger.warning(f"Ignoring invalid CADENCE_MISFIRE_GRACE_TIME: {grace!r}")

    def save(self):
        """Save configuration to JSON file."""
        self.config_path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            'strict_expressions': self.strict_expressions,
            'misfire_grace_time': self.misfire_grace_time,
            'logging': asdict(self.logging),
        }

        with open(self.config_path, 'w') as f:
            json.dump(data, f, indent=2)

        logger.info(f"Saved configuration to {self.config_path}")

    def validate(self) -> List[str]:
        """
        Validate configuration.

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []

        if self.misfire_grace_time is not None:
            if isinstance(self.misfire_grace_time, bool) or not isinstance(self.misfire_grace_time, int):
                errors.append("'misfire_grace_time' must be a whole number of seconds or null")
            elif self.misfire_grace_time <= 0:
                errors.append("'misfire_grace_time' must be positive")

        if logging.getLevelName(str(self.logging.level).upper()) not in range(0, 51):
            errors.append(f"Unknown logging level: {self.logging.level}")

        return errors

    def __repr__(self):
        return (
            f"SchedulerConfig(strict_expressions={self.strict_expressions}, "
            f"misfire_grace_time={self.misfire_grace_time}, path={self.config_path})"
        )
