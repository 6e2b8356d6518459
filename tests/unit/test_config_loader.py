"""Unit tests for YAML configuration loading and flag merging."""

from pathlib import Path

import pytest

from almadeploy.core.config_loader import build_config, load_config_file
from almadeploy.exceptions import ConfigError


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "deploy.yml"
    path.write_text(
        """
domain: app.example.com
contact-email: ops@example.com
db_name: foo
db_user: bar
db_password: secret
backend_port: 8081
firewall_ports:
  - 9011/tcp
skip_build: true
"""
    )
    return path


class TestLoadConfigFile:
    """Tests for load_config_file."""

    def test_dashes_become_underscores(self, config_file: Path) -> None:
        data = load_config_file(config_file)
        assert data["contact_email"] == "ops@example.com"
        assert data["firewall_ports"] == ["9011/tcp"]

    def test_empty_file(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.yml"
        path.write_text("")
        assert load_config_file(path) == {}

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.yml"
        path.write_text("domain: [unclosed\n")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_config_file(path)

    def test_non_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "list.yml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigError, match="must contain a mapping"):
            load_config_file(path)

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="Cannot read"):
            load_config_file(tmp_path / "absent.yml")


class TestBuildConfig:
    """Tests for merging file values with command-line options."""

    def test_flags_override_file(self, config_file: Path) -> None:
        config = build_config(
            {"db_name": "other", "backend_port": None, "firewall_services": ()},
            config_file,
        )
        assert config.db_name == "other"
        assert config.backend_port == 8081
        assert config.firewall_services == ("ssh", "http", "https")
        assert config.firewall_ports == ("9011/tcp",)
        assert config.skip_build is True

    def test_without_file(self) -> None:
        config = build_config({"domain": "app.example.com", "skip_build": None})
        assert config.domain == "app.example.com"
        assert config.skip_build is False

    def test_unknown_file_key(self, tmp_path: Path) -> None:
        path = tmp_path / "typo.yml"
        path.write_text("domian: app.example.com\n")
        with pytest.raises(ConfigError, match="domian"):
            build_config({}, path)
