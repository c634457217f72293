"""Unit tests for image_migration/config_manager.py"""

import os
from unittest.mock import patch

import pytest
import yaml

from image_migration.config_manager import ConfigManager, ConfigValidationError
from image_migration.retry_utils import RetryPolicy

CREDENTIAL_VARS = ("REGISTRY_USERNAME", "REGISTRY_TOKEN", "GITHUB_USERNAME", "GITHUB_TOKEN")


@pytest.fixture(autouse=True)
def clean_environment():
    """Remove credential and override variables so tests see only what they set"""
    overrides = CREDENTIAL_VARS + ("DEST_REGISTRY", "DEST_NAMESPACE", "CONTAINER_RUNTIME", "CATALOG_FILE")
    env = {k: v for k, v in os.environ.items() if k not in overrides}
    with patch.dict(os.environ, env, clear=True):
        yield


def _write_config(tmp_path, config):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.dump(config))
    return str(path)


class TestConfigManagerInitialization:
    """Tests for ConfigManager initialization"""

    def test_loads_default_config_when_file_not_found(self):
        """Test that defaults are used when config file doesn't exist"""
        cm = ConfigManager(config_file="/nonexistent/config.yaml", validate=False)

        assert cm.get_destination_registry() == "ghcr.io"
        assert cm.get_runtime_binary() == "docker"
        assert cm.get_pull_attempts() == 3
        assert cm.get_pull_retry_delay() == 2.0
        assert cm.get_delay_between_images() == 1.0
        assert cm.get_catalog_path() is None

    def test_merges_user_config_with_defaults(self, tmp_path):
        """Test that user config is merged with defaults"""
        path = _write_config(tmp_path, {"retry": {"pull_attempts": 5}, "runtime": {"binary": "podman"}})

        cm = ConfigManager(config_file=path, validate=False)

        assert cm.get_pull_attempts() == 5
        assert cm.get_runtime_binary() == "podman"
        # Defaults preserved
        assert cm.get_pull_retry_delay() == 2.0
        assert cm.get_runtime_timeout() == 1800

    def test_environment_variables_override_config(self, tmp_path):
        """Test that environment variables take precedence"""
        path = _write_config(tmp_path, {"destination": {"registry": "registry.example.com"}})

        with patch.dict(os.environ, {"DEST_REGISTRY": "ghcr.io", "CONTAINER_RUNTIME": "podman"}):
            cm = ConfigManager(config_file=path, validate=False)
            assert cm.get_destination_registry() == "ghcr.io"
            assert cm.get_runtime_binary() == "podman"

    def test_config_file_from_environment(self, tmp_path):
        path = _write_config(tmp_path, {"pacing": {"delay_between_images": 0}})

        with patch.dict(os.environ, {"CONFIG_FILE": path}):
            cm = ConfigManager(validate=False)

        assert cm.get_delay_between_images() == 0.0


class TestCredentials:
    """Tests for credential lookup"""

    def test_missing_credentials(self):
        cm = ConfigManager(config_file="/nonexistent/config.yaml", validate=False)

        assert cm.get_missing_credentials() == ["REGISTRY_USERNAME", "REGISTRY_TOKEN"]

    def test_empty_values_count_as_missing(self):
        with patch.dict(os.environ, {"REGISTRY_USERNAME": "myuser", "REGISTRY_TOKEN": ""}):
            cm = ConfigManager(config_file="/nonexistent/config.yaml", validate=False)
            assert cm.get_missing_credentials() == ["REGISTRY_TOKEN"]

    def test_github_variables_are_accepted(self):
        with patch.dict(os.environ, {"GITHUB_USERNAME": "ghuser", "GITHUB_TOKEN": "ghp_x"}):
            cm = ConfigManager(config_file="/nonexistent/config.yaml", validate=False)
            assert cm.get_missing_credentials() == []
            assert cm.get_registry_username() == "ghuser"
            assert cm.get_registry_token() == "ghp_x"

    def test_registry_variables_take_priority(self):
        env = {"REGISTRY_USERNAME": "primary", "GITHUB_USERNAME": "fallback"}
        with patch.dict(os.environ, env):
            cm = ConfigManager(config_file="/nonexistent/config.yaml", validate=False)
            assert cm.get_registry_username() == "primary"

    def test_namespace_defaults_to_username(self):
        with patch.dict(os.environ, {"REGISTRY_USERNAME": "myuser"}):
            cm = ConfigManager(config_file="/nonexistent/config.yaml", validate=False)
            assert cm.get_destination_namespace() == "myuser"

    def test_configured_namespace_wins(self, tmp_path):
        path = _write_config(tmp_path, {"destination": {"namespace": "team"}})
        with patch.dict(os.environ, {"REGISTRY_USERNAME": "myuser"}):
            cm = ConfigManager(config_file=path, validate=False)
            assert cm.get_destination_namespace() == "team"

    def test_print_config_masks_token(self, capsys):
        with patch.dict(os.environ, {"REGISTRY_USERNAME": "myuser", "REGISTRY_TOKEN": "ghp_secret"}):
            cm = ConfigManager(config_file="/nonexistent/config.yaml", validate=False)
            cm.print_config()

        out = capsys.readouterr().out
        assert "ghp_secret" not in out
        assert "********" in out


class TestRetryPolicyFromConfig:
    """Tests for get_retry_policy"""

    def test_default_policy(self):
        cm = ConfigManager(config_file="/nonexistent/config.yaml", validate=False)

        assert cm.get_retry_policy() == RetryPolicy(attempts=3, delay=2.0, backoff_factor=1.0, max_delay=60.0)

    def test_string_values_are_coerced(self, tmp_path):
        path = _write_config(tmp_path, {"retry": {"pull_attempts": "4", "pull_retry_delay": "0.5"}})
        cm = ConfigManager(config_file=path, validate=False)

        policy = cm.get_retry_policy()
        assert policy.attempts == 4
        assert policy.delay == 0.5

    def test_invalid_type_raises(self, tmp_path):
        path = _write_config(tmp_path, {"retry": {"pull_attempts": "many"}})
        cm = ConfigManager(config_file=path, validate=False)

        with pytest.raises(ConfigValidationError):
            cm.get_pull_attempts()


class TestConfigManagerValidation:
    """Tests for validate_config"""

    def test_validate_config_success(self):
        cm = ConfigManager(config_file="/nonexistent/config.yaml", validate=False)
        cm.validate_config()

    @pytest.mark.parametrize(
        "config",
        [
            {"destination": {"registry": ""}},
            {"destination": {"namespace": "My User"}},
            {"runtime": {"binary": ""}},
            {"runtime": {"timeout": 0}},
            {"retry": {"pull_attempts": 0}},
            {"retry": {"pull_retry_delay": -1}},
            {"retry": {"pull_retry_delay": 10, "max_delay": 5}},
            {"retry": {"backoff_factor": 0.5}},
            {"pacing": {"delay_between_images": -1}},
        ],
    )
    def test_invalid_values_are_rejected(self, tmp_path, config):
        path = _write_config(tmp_path, config)

        with pytest.raises(ConfigValidationError):
            ConfigManager(config_file=path, validate=True)

    def test_is_valid_registry_host(self):
        cm = ConfigManager(config_file="/nonexistent/config.yaml", validate=False)

        assert cm._is_valid_registry_host("ghcr.io")
        assert cm._is_valid_registry_host("localhost:5000")
        assert not cm._is_valid_registry_host("https://ghcr.io")
        assert not cm._is_valid_registry_host("")


class TestConfiguredCredentialNames:
    """Tests for the credentials section"""

    def test_custom_variable_names(self, tmp_path):
        path = _write_config(tmp_path, {"credentials": {"username_env": "CI_USER", "token_env": "CI_TOKEN"}})

        with patch.dict(os.environ, {"CI_USER": "ci", "CI_TOKEN": "tok"}):
            cm = ConfigManager(config_file=path, validate=False)
            assert cm.get_registry_username() == "ci"
            assert cm.get_registry_token() == "tok"

    def test_missing_custom_variable_is_named(self, tmp_path):
        path = _write_config(tmp_path, {"credentials": {"token_env": "CI_TOKEN"}})

        with patch.dict(os.environ, {"REGISTRY_USERNAME": "myuser"}):
            cm = ConfigManager(config_file=path, validate=False)
            assert cm.get_missing_credentials() == ["CI_TOKEN"]


class TestCommandLineOverrides:
    """Tests for apply_overrides"""

    def test_overrides_beat_environment_and_file(self, tmp_path):
        path = _write_config(tmp_path, {"destination": {"registry": "registry.example.com"}})

        with patch.dict(os.environ, {"DEST_REGISTRY": "env.example.com", "CONTAINER_RUNTIME": "nerdctl"}):
            cm = ConfigManager(config_file=path, validate=False)
            cm.apply_overrides(destination_registry="ghcr.io", runtime_binary="podman")

            assert cm.get_destination_registry() == "ghcr.io"
            assert cm.get_runtime_binary() == "podman"

    def test_empty_overrides_are_ignored(self):
        cm = ConfigManager(config_file="/nonexistent/config.yaml", validate=False)
        cm.apply_overrides(destination_registry=None, runtime_binary="")

        assert cm.get_destination_registry() == "ghcr.io"
        assert cm.get_runtime_binary() == "docker"

    def test_validation_uses_overridden_registry(self, tmp_path):
        """Test a bad registry in the file passes once the command line replaces it"""
        path = _write_config(tmp_path, {"destination": {"registry": ""}})
        cm = ConfigManager(config_file=path, validate=False)

        with pytest.raises(ConfigValidationError):
            cm.validate_config()

        cm.apply_overrides(destination_registry="ghcr.io")
        cm.validate_config()

    def test_unparseable_file_raises(self, tmp_path):
        """Test a broken config file is an error rather than a silent fallback to defaults"""
        path = tmp_path / "config.yaml"
        path.write_text("retry: [unclosed\n")

        with pytest.raises(ConfigValidationError):
            ConfigManager(config_file=str(path), validate=False)
