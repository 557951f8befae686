"""Configuration loader.

Reads configuration files in YAML format and returns a dictionary.
The default configuration lives in ``configs/default.yaml`` at the
project root; the CLI accepts any other file via ``--config``.
"""

from pathlib import Path
from typing import Any, Dict, Union

import yaml

from ..errors import ConfigError


def load_config(path: Union[str, Path]) -> Dict[str, Any]:
    """Load a YAML configuration file into a dictionary.

    Parameters
    ----------
    path : str or Path
        Path to the YAML configuration file.

    Returns
    -------
    dict
        Parsed configuration dictionary.  An empty file yields an
        empty dict.

    Raises
    ------
    ConfigError
        If the file does not exist, cannot be parsed, or does not
        contain a mapping at the top level.
    """
    cfg_path = Path(path)
    if not cfg_path.is_file():
        raise ConfigError(f"configuration file not found: {cfg_path}")
    try:
        with open(cfg_path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise ConfigError(f"invalid YAML in {cfg_path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{cfg_path} must contain a mapping, got {type(data).__name__}")
    return data
