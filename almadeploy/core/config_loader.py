"""Load deployment configuration from YAML and command-line options."""

from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from almadeploy.exceptions import ConfigError
from almadeploy.models.deployment import DeploymentConfig


def load_config_file(path: Path) -> Dict[str, Any]:
    """
    Read a YAML configuration file.

    Keys are DeploymentConfig field names; dashes are accepted in place of
    underscores.

    Raises:
        ConfigError: If the file is unreadable, malformed or not a mapping
    """
    try:
        raw = yaml.safe_load(path.read_text())
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}", context=str(e))
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}", context=str(e))

    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError(
            f"Config file {path} must contain a mapping",
            context=f"Found {type(raw).__name__}",
        )
    return {str(key).replace("-", "_"): value for key, value in raw.items()}


def build_config(
    options: Dict[str, Any], config_file: Optional[Path] = None
) -> DeploymentConfig:
    """
    Merge file values with command-line options (options win).

    Options left unset on the command line (None or empty) do not override
    file values.
    """
    values: Dict[str, Any] = {}
    if config_file is not None:
        values.update(load_config_file(config_file))
    for key, value in options.items():
        if value is None or value == ():
            continue
        values[key] = value
    return DeploymentConfig.from_mapping(values)
