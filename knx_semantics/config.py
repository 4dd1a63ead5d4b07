import copy
import json
import logging
import os
from pathlib import Path

from knx_semantics.utils.config_validator import ConfigValidator

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent / 'config.json'
CONFIG_ENV_VAR = 'KNX_SEMANTICS_CONFIG'

config = {}


def read_config(path=None) -> dict:
    """
    Read and validate a configuration file without activating it.

    Args:
        path: Path to a config.json; defaults to ``$KNX_SEMANTICS_CONFIG`` or the bundled file

    Raises:
        ConfigValidationError: If the configuration is invalid
        FileNotFoundError: If the file does not exist
    """
    if path is None:
        path = os.environ.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH
    with open(path, encoding='utf8') as f:
        cfg = json.load(f)
    ConfigValidator().validate(cfg)
    return cfg


def load_config(path=None) -> dict:
    """Read a configuration file and make it the active ``config``."""
    cfg = read_config(path)
    # keep the module level dict identity, other modules hold a reference to it
    config.clear()
    config.update(cfg)
    logger.debug(f"Loaded configuration from {path or DEFAULT_CONFIG_PATH}")
    return config


def characteristics_settings(name: str) -> dict:
    """Return a copy of the settings of one characteristics implementation."""
    return copy.deepcopy(config['characteristics'][name])


load_config()
