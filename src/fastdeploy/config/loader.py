"""Configuration file loading and template scaffolding."""

import os
import time
from pathlib import Path
from typing import Any, Optional

import yaml

DEFAULT_CONFIG_NAME = "fast-deploy.config.yaml"
ENV_PASSWORD_VAR = "FAST_DEPLOY_PASSWORD"

TEMPLATE_CONFIG = """\
# fast-deploy configuration
# A single target mapping, a list of them, or a mapping with a "targets" list.

host: 192.168.1.10          # server address
port: 22                    # SSH port
username: root              # SSH user
password: "******"          # SSH password (or set FAST_DEPLOY_PASSWORD)
# privateKey: ~/.ssh/id_ed25519   # key file or PEM text
cname: nginx                # container name, omit to deploy onto the host filesystem
dist: ./build               # local directory to upload
# zipFile: build.zip        # prebuilt zip archive (takes precedence over dist)
# archiveDirName: build     # directory inside the zip holding the content
remoteStatic: /usr/share/nginx/html   # where the content ends up
debug: true                 # trace every step of this run
"""


class ConfigError(Exception):
    """Raised when a configuration file is missing or malformed."""


def resolve_config_path(path: Optional[Path] = None, cwd: Optional[Path] = None) -> Path:
    """Resolve a config path against the working directory.

    Args:
        path: Explicit path; the default file name when None
        cwd: Base directory (defaults to the process cwd)

    Returns:
        Absolute config path
    """
    base = cwd or Path.cwd()
    config_path = Path(path) if path else Path(DEFAULT_CONFIG_NAME)
    config_path = config_path.expanduser()
    if not config_path.is_absolute():
        config_path = base / config_path
    return config_path


def load_yaml_config(path: Path) -> Any:
    """Load a YAML configuration file."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            return yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e


def load_targets(path: Path, include_env: bool = True) -> list[dict[str, Any]]:
    """Load the raw target mappings from a configuration file.

    Targets are returned unvalidated so that the batch can reject a bad
    target without losing the others.

    Args:
        path: Configuration file path
        include_env: Fill missing passwords from FAST_DEPLOY_PASSWORD

    Returns:
        List of raw target mappings, in file order
    """
    if not path.exists():
        raise ConfigError(f"Configuration file not found: {path}")

    raw = load_yaml_config(path)

    if isinstance(raw, dict) and "targets" in raw:
        raw = raw["targets"]
    if isinstance(raw, dict):
        targets = [raw]
    elif isinstance(raw, list):
        targets = list(raw)
    else:
        raise ConfigError(
            f"Configuration {path} must be a target mapping or a list of targets"
        )

    if include_env:
        password = os.environ.get(ENV_PASSWORD_VAR)
        if password:
            targets = [
                {**t, "password": password}
                if isinstance(t, dict) and "password" not in t
                else t
                for t in targets
            ]

    return targets


def _base36(value: int) -> str:
    digits = "0123456789abcdefghijklmnopqrstuvwxyz"
    out = ""
    while True:
        value, rem = divmod(value, 36)
        out = digits[rem] + out
        if not value:
            return out


def create_template_config(directory: Optional[Path] = None) -> tuple[Path, bool]:
    """Write a template configuration file.

    An existing config is never overwritten; a timestamp-suffixed name is
    used instead.

    Args:
        directory: Where to write (defaults to the process cwd)

    Returns:
        (path written, whether the default name was already taken)
    """
    directory = directory or Path.cwd()
    config_path = directory / DEFAULT_CONFIG_NAME
    existed = config_path.exists()
    if existed:
        stamp = _base36(int(time.time() * 1000))
        config_path = directory / f"fast-deploy-{stamp}.config.yaml"

    config_path.write_text(TEMPLATE_CONFIG, encoding="utf-8")
    return config_path, existed
