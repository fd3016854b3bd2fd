"""Tests for configuration file loading and template scaffolding."""

from pathlib import Path
from unittest.mock import patch

import pytest
import yaml

from fastdeploy.config.loader import (
    DEFAULT_CONFIG_NAME,
    ENV_PASSWORD_VAR,
    TEMPLATE_CONFIG,
    ConfigError,
    create_template_config,
    load_targets,
    resolve_config_path,
)
from fastdeploy.config.schemas import validate_target


class TestResolveConfigPath:
    """Tests for resolve_config_path()."""

    def test_default_name(self, tmp_path: Path) -> None:
        assert resolve_config_path(None, cwd=tmp_path) == tmp_path / DEFAULT_CONFIG_NAME

    def test_relative_path(self, tmp_path: Path) -> None:
        assert resolve_config_path(Path("conf/prod.yaml"), cwd=tmp_path) == tmp_path / "conf/prod.yaml"

    def test_absolute_path(self, tmp_path: Path) -> None:
        path = tmp_path / "x.yaml"
        assert resolve_config_path(path, cwd=Path("/elsewhere")) == path


class TestLoadTargets:
    """Tests for load_targets()."""

    def test_single_mapping(self, tmp_path: Path, base_config) -> None:
        path = tmp_path / "c.yaml"
        path.write_text(yaml.dump(base_config))
        assert load_targets(path, include_env=False) == [base_config]

    def test_list(self, tmp_path: Path, base_config) -> None:
        path = tmp_path / "c.yaml"
        path.write_text(yaml.dump([base_config, {**base_config, "host": "h2"}]))
        targets = load_targets(path, include_env=False)
        assert [t["host"] for t in targets] == ["h", "h2"]

    def test_targets_key(self, tmp_path: Path, base_config) -> None:
        path = tmp_path / "c.yaml"
        path.write_text(yaml.dump({"targets": [base_config]}))
        assert len(load_targets(path, include_env=False)) == 1

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="not found"):
            load_targets(tmp_path / "nope.yaml")

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "c.yaml"
        path.write_text("host: [unclosed\n")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_targets(path)

    def test_scalar_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "c.yaml"
        path.write_text("just a string\n")
        with pytest.raises(ConfigError):
            load_targets(path)

    def test_password_from_env(self, tmp_path: Path, base_config) -> None:
        """Env password fills only targets without one."""
        no_password = {k: v for k, v in base_config.items() if k != "password"}
        path = tmp_path / "c.yaml"
        path.write_text(yaml.dump([no_password, base_config]))
        with patch.dict("os.environ", {ENV_PASSWORD_VAR: "from-env"}):
            targets = load_targets(path)
        assert targets[0]["password"] == "from-env"
        assert targets[1]["password"] == "p"


class TestTemplateConfig:
    """Tests for create_template_config()."""

    def test_template_is_valid_target(self) -> None:
        """The scaffolded template validates as-is."""
        assert validate_target(yaml.safe_load(TEMPLATE_CONFIG)).valid

    def test_creates_default_file(self, tmp_path: Path) -> None:
        path, existed = create_template_config(tmp_path)
        assert path == tmp_path / DEFAULT_CONFIG_NAME
        assert existed is False
        assert path.read_text() == TEMPLATE_CONFIG

    def test_never_overwrites(self, tmp_path: Path) -> None:
        existing = tmp_path / DEFAULT_CONFIG_NAME
        existing.write_text("keep me")
        path, existed = create_template_config(tmp_path)
        assert existed is True
        assert path != existing
        assert path.name.startswith("fast-deploy-")
        assert path.name.endswith(".config.yaml")
        assert existing.read_text() == "keep me"
