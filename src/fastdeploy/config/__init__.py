"""Configuration schema, validation and file loading."""

from fastdeploy.config.loader import (
    DEFAULT_CONFIG_NAME,
    ConfigError,
    create_template_config,
    load_targets,
    resolve_config_path,
)
from fastdeploy.config.schemas import DeployTarget, ValidationResult, validate_target

__all__ = [
    "DeployTarget",
    "ValidationResult",
    "validate_target",
    "ConfigError",
    "DEFAULT_CONFIG_NAME",
    "create_template_config",
    "load_targets",
    "resolve_config_path",
]
