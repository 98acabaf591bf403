"""Process environment and logging setup for crmsync."""

import os
import logging
from pathlib import Path
from typing import Dict, Mapping, Optional, Tuple

from dotenv import load_dotenv

from ..exceptions import ConfigurationError

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Connection pool chatter, only shown at DEBUG
NOISY_LOGGERS = ("urllib3",)


def setup_logging(level: str = "INFO") -> None:
    """Set up logging configuration.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    log_level = getattr(logging, level.upper())
    logging.basicConfig(level=log_level, format=LOG_FORMAT, datefmt='%Y-%m-%d %H:%M:%S')
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(log_level if log_level <= logging.DEBUG else logging.WARNING)


def load_environment(env_file: Optional[str] = None) -> Optional[Path]:
    """Load credentials from a .env file into the process environment.

    Variables already set in the environment take precedence over the file.

    Args:
        env_file: Path to a .env file. If None, ./.env is used when present.

    Returns:
        The file that was loaded, or None when no default .env exists

    Raises:
        ConfigurationError: If an explicitly given env_file does not exist
    """
    if env_file:
        env_path = Path(env_file)
        if not env_path.is_file():
            raise ConfigurationError(f"Environment file {env_path} does not exist")
    else:
        env_path = Path('.env')
        if not env_path.is_file():
            logging.debug("No .env file in the working directory; using the process environment")
            return None

    load_dotenv(env_path, override=False)
    logging.info(f"Loaded environment from {env_path}")
    return env_path


def read_env(required: Mapping[str, str],
             optional: Optional[Mapping[str, Tuple[str, str]]] = None) -> Dict[str, str]:
    """Collect client settings from environment variables.

    Args:
        required: Variable name -> setting name
        optional: Variable name -> (setting name, default). Unset or empty
            variables take the default.

    Returns:
        Settings keyed by setting name, ready to pass as keyword arguments

    Raises:
        ConfigurationError: Naming every required variable that is unset or empty
    """
    missing = [var for var in required if not os.getenv(var)]
    if missing:
        raise ConfigurationError(f"Missing required environment variables: {', '.join(missing)}")

    settings = {name: os.environ[var] for var, name in required.items()}
    for var, (name, default) in (optional or {}).items():
        settings[name] = os.getenv(var) or default
    return settings
