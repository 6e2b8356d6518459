"""Unit tests for the deployment configuration record and derived paths."""

from dataclasses import FrozenInstanceError
from pathlib import Path

import pytest

from almadeploy.exceptions import ConfigError
from almadeploy.models.deployment import (
    DeploymentConfig,
    DeploymentPaths,
    DeploymentReport,
    PhaseResult,
    PhaseStatus,
    slugify,
)


class TestSlugify:
    """Tests for application name slugs."""

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("myapp", "myapp"),
            ("My App", "my-app"),
            ("  Shop__API v2 ", "shop-api-v2"),
            ("!!!", "app"),
        ],
    )
    def test_slugify(self, name: str, expected: str) -> None:
        assert slugify(name) == expected


class TestDeploymentConfig:
    """Tests for DeploymentConfig."""

    def test_defaults(self) -> None:
        config = DeploymentConfig()
        assert config.app_name == "myapp"
        assert config.backend_port == 9091
        assert config.pg_version == "16"
        assert config.firewall_services == ("ssh", "http", "https")
        assert config.firewall_ports == ()
        assert config.skip_build is False

    def test_is_immutable(self) -> None:
        config = DeploymentConfig(domain="app.example.com")
        with pytest.raises(FrozenInstanceError):
            config.domain = "other.example.com"  # type: ignore[misc]

    def test_derived_names(self) -> None:
        config = DeploymentConfig(app_name="Shop API", pg_version="15")
        assert config.app_slug == "shop-api"
        assert config.backend_user == "shop_api_backend"
        assert config.frontend_user == "shop_api_frontend"
        assert config.backend_service == "shop-api-backend.service"
        assert config.pg_service == "postgresql-15"

    def test_uses_custom_tls_requires_cert_and_key(self) -> None:
        assert not DeploymentConfig().uses_custom_tls
        assert not DeploymentConfig(tls_cert_path=Path("/c.pem")).uses_custom_tls
        assert DeploymentConfig(
            tls_cert_path=Path("/c.pem"), tls_key_path=Path("/k.pem")
        ).uses_custom_tls

    def test_masked_hides_password(self) -> None:
        masked = DeploymentConfig(db_password="hunter2").masked()
        assert masked["db_password"] == "********"
        assert "hunter2" not in str(masked)


class TestFromMapping:
    """Tests for building a config from loosely-typed values."""

    def test_coerces_types(self) -> None:
        config = DeploymentConfig.from_mapping(
            {
                "domain": "app.example.com",
                "backend_source_path": "/srv/api",
                "backend_port": "8081",
                "health_interval": "0.5",
                "pg_version": 16,
                "firewall_ports": "9011/tcp",
                "skip_build": "yes",
            }
        )
        assert config.backend_source_path == Path("/srv/api")
        assert config.backend_port == 8081
        assert config.health_interval == 0.5
        assert config.pg_version == "16"
        assert config.firewall_ports == ("9011/tcp",)
        assert config.skip_build is True

    def test_none_and_empty_tuples_keep_defaults(self) -> None:
        config = DeploymentConfig.from_mapping(
            {"app_name": None, "firewall_services": ()}
        )
        assert config.app_name == "myapp"
        assert config.firewall_services == ("ssh", "http", "https")

    def test_unknown_key_raises(self) -> None:
        with pytest.raises(ConfigError, match="Unknown configuration key"):
            DeploymentConfig.from_mapping({"domian": "typo.example.com"})

    def test_bad_type_raises(self) -> None:
        with pytest.raises(ConfigError, match="backend_port"):
            DeploymentConfig.from_mapping({"backend_port": "eighty"})


class TestDeploymentPaths:
    """Tests for derived host paths."""

    def test_paths_under_root(self, tmp_path: Path) -> None:
        config = DeploymentConfig(domain="app.example.com", app_name="Shop")
        paths = DeploymentPaths.from_config(config, root=tmp_path)

        assert paths.app_root == tmp_path / "opt" / "shop"
        assert paths.backend_jar == tmp_path / "opt" / "shop" / "backend" / "app.jar"
        assert paths.static_dir == tmp_path / "var" / "www" / "shop"
        assert paths.backend_env_file == tmp_path / "etc" / "shop" / "backend.env"
        assert paths.systemd_unit_file.name == "shop-backend.service"
        assert paths.nginx_conf == tmp_path / "etc" / "nginx" / "conf.d" / "shop.conf"
        assert paths.letsencrypt_live_dir.name == "app.example.com"
        assert paths.pg_hba_conf == tmp_path / "var" / "lib" / "pgsql" / "16" / "data" / "pg_hba.conf"

    def test_default_root_is_filesystem_root(self) -> None:
        paths = DeploymentPaths.from_config(DeploymentConfig())
        assert paths.app_root == Path("/opt/myapp")
        assert paths.as_dict()["tls_dir"] == "/etc/ssl/myapp"


class TestPhaseResults:
    """Tests for phase results and the run report."""

    def test_changed(self) -> None:
        assert PhaseResult("a", PhaseStatus.CREATED).changed
        assert PhaseResult("a", PhaseStatus.UPDATED).changed
        assert not PhaseResult("a", PhaseStatus.SKIPPED).changed
        assert not PhaseResult("a", PhaseStatus.VERIFIED).changed

    def test_report_lookup(self) -> None:
        report = DeploymentReport(
            results=[
                PhaseResult("firewall", PhaseStatus.SKIPPED),
                PhaseResult("database", PhaseStatus.UPDATED),
            ]
        )
        assert report.completed_phases == ["firewall", "database"]
        assert report.status_of("database") is PhaseStatus.UPDATED
        assert report.status_of("tls") is None
