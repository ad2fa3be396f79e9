"""
TOML config loader for flowstore components.

@.architecture
Incoming: config/flowstore.toml, FLOWSTORE_CONFIG, config/settings.py --- {TOML file, str/Path config path}
Processing: load_config(), default_config_path() --- {2 jobs: config_location, config_loading}
Outgoing: config/settings.py, scripts/health_check.py --- {Dict[str, Any] config data}
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import toml

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "FLOWSTORE_CONFIG"


def default_config_path() -> Path:
    """Config file named by FLOWSTORE_CONFIG, else ./config/flowstore.toml."""
    return Path(os.getenv(CONFIG_ENV_VAR, "config/flowstore.toml"))


def load_config(path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """
    Load configuration from a TOML file.

    A missing file is not an error: defaults apply. A file that exists but
    doesn't parse raises ``toml.TomlDecodeError``.

    Args:
        path: Config file (default_config_path() if None)

    Returns:
        Parsed config sections
    """
    config_file = Path(path) if path is not None else default_config_path()
    if not config_file.is_file():
        logger.debug(f"No config file at {config_file}, using defaults")
        return {}

    with open(config_file, "r", encoding="utf-8") as f:
        return toml.load(f)
