"""
Client Settings Persistence
===========================

Stores the few preferences the desktop client remembers between runs in a
hidden JSON file in the user's home directory (``~/.bugboard_config.json``):

- the backend base URL,
- the last email used to log in,
- the CustomTkinter appearance mode.

Passwords and tokens are never written. The ``BUGBOARD_API_URL`` environment
variable overrides the stored URL for the current run without being saved.
"""

import json
import logging
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path

from bugboard.core.config import API_URL_ENV_VAR, DEFAULT_API_BASE_URL
from bugboard.utils.logger import log_config

CONFIG_PATH = Path.home() / ".bugboard_config.json"


@dataclass
class ClientSettings:
    api_base_url: str = DEFAULT_API_BASE_URL
    last_email: str = ""
    appearance_mode: str = "Dark"


def effective_api_url(settings: ClientSettings) -> str:
    """The base URL to use this run: the environment override, else the saved value."""
    override = os.environ.get(API_URL_ENV_VAR, "").strip()
    url = override or settings.api_base_url or DEFAULT_API_BASE_URL
    return url.rstrip("/")


def save_config(settings: ClientSettings) -> None:
    """
    Write ``settings`` as pretty-printed JSON. Failures are logged, never raised,
    since losing preferences must not prevent the window from closing.
    """
    logger = logging.getLogger(__name__)

    try:
        data = asdict(settings)
        log_config("Saving Configuration", data, logger)

        with open(CONFIG_PATH, "w") as f:
            json.dump(data, f, indent=2)

        logger.info(f"Configuration saved successfully to {CONFIG_PATH}")

    except Exception as e:
        logger.error(f"Failed to save configuration: {e}", exc_info=True)


def load_config() -> ClientSettings:
    """
    Read saved settings. Unknown keys are ignored; a missing or corrupted file
    yields the defaults.
    """
    logger = logging.getLogger(__name__)
    settings = ClientSettings()

    if not CONFIG_PATH.exists():
        logger.info(f"No existing configuration file found at {CONFIG_PATH}")
        return settings

    try:
        logger.info(f"Loading configuration from {CONFIG_PATH}")

        with open(CONFIG_PATH, "r") as f:
            data = json.load(f)

        log_config("Loaded Configuration", data, logger)

        known = {f.name for f in fields(ClientSettings)}
        for k, v in data.items():
            if k in known and isinstance(v, str):
                setattr(settings, k, v.strip())

        logger.info("Configuration loaded and applied successfully")

    except json.JSONDecodeError as e:
        logger.error(f"Configuration file is corrupted: {e}", exc_info=True)
    except Exception as e:
        logger.error(f"Failed to load configuration: {e}", exc_info=True)

    return settings
