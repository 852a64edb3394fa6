"""
Tests for restmodel.config.
"""

import json
import os

import pytest

from restmodel import ConfigInvalidFault, Settings, Transport, get_transport
from restmodel.config import ConfigLoader, configure


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in list(os.environ):
        if key.startswith("RESTMODEL_"):
            monkeypatch.delenv(key)


# ============================================================================
# Loading
# ============================================================================


class TestConfigLoader:

    def test_defaults(self):
        loader = ConfigLoader.load()
        assert loader.config_data == {}
        assert loader.settings() == Settings()

    def test_yaml_file(self, tmp_path):
        path = tmp_path / "restmodel.yaml"
        path.write_text("base_url: https://yaml.test\ntimeout: 3\nheaders:\n  X-App: demo\n")
        settings = ConfigLoader.load([str(path)]).settings()
        assert settings.base_url == "https://yaml.test"
        assert settings.timeout == 3.0
        assert settings.headers == {"X-App": "demo"}

    def test_json_file(self, tmp_path):
        path = tmp_path / "restmodel.json"
        path.write_text(json.dumps({"base_url": "https://json.test"}))
        assert ConfigLoader.load([str(path)]).get("base_url") == "https://json.test"

    def test_glob_and_deep_merge(self, tmp_path):
        (tmp_path / "a.yaml").write_text("headers:\n  X-One: '1'\n")
        (tmp_path / "b.yaml").write_text("headers:\n  X-Two: '2'\n")
        loader = ConfigLoader.load([str(tmp_path / "*.yaml")])
        assert loader.get("headers") == {"X-One": "1", "X-Two": "2"}

    def test_missing_file_is_ignored(self, tmp_path):
        loader = ConfigLoader.load([str(tmp_path / "absent.yaml")])
        assert loader.config_data == {}

    def test_invalid_json_raises(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{nope")
        with pytest.raises(ConfigInvalidFault):
            ConfigLoader.load([str(path)])

    def test_non_mapping_raises(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigInvalidFault):
            ConfigLoader.load([str(path)])

    def test_env_file(self, tmp_path):
        path = tmp_path / ".env"
        path.write_text(
            "RESTMODEL_BASE_URL=https://dotenv.test\n"
            "RESTMODEL_HEADERS__AUTHORIZATION='Bearer abc'\n"
            "UNRELATED=1\n"
        )
        loader = ConfigLoader.load(env_file=str(path))
        assert loader.get("base_url") == "https://dotenv.test"
        assert loader.get("headers.authorization") == "Bearer abc"
        assert loader.get("unrelated") is None

    def test_missing_env_file_is_ignored(self, tmp_path):
        loader = ConfigLoader.load(env_file=str(tmp_path / ".env"))
        assert loader.config_data == {}

    def test_environment_variables(self, monkeypatch):
        monkeypatch.setenv("RESTMODEL_TIMEOUT", "2.5")
        monkeypatch.setenv("RESTMODEL_HEADERS__X_TRACE", "yes")
        loader = ConfigLoader.load()
        assert loader.get("timeout") == 2.5
        assert loader.get("headers.x_trace") is True

    def test_custom_prefix(self, monkeypatch):
        monkeypatch.setenv("PEOPLE_API_BASE_URL", "https://people.test")
        assert ConfigLoader.load(env_prefix="PEOPLE_API_").get("base_url") == "https://people.test"

    def test_precedence(self, tmp_path, monkeypatch):
        config = tmp_path / "restmodel.yaml"
        config.write_text("base_url: https://file.test\ntimeout: 1\n")
        env_file = tmp_path / ".env"
        env_file.write_text("RESTMODEL_BASE_URL=https://dotenv.test\nRESTMODEL_TIMEOUT=2\n")
        monkeypatch.setenv("RESTMODEL_TIMEOUT", "3")

        loader = ConfigLoader.load(
            [str(config)],
            env_file=str(env_file),
            overrides={"headers": {"X-App": "demo"}},
        )
        assert loader.get("base_url") == "https://dotenv.test"
        assert loader.get("timeout") == 3
        assert loader.get("headers") == {"X-App": "demo"}

        loader = ConfigLoader.load([str(config)], overrides={"base_url": "https://override.test"})
        assert loader.get("base_url") == "https://override.test"

    def test_get_missing_path(self):
        loader = ConfigLoader.load(overrides={"a": {"b": 1}})
        assert loader.get("a.b") == 1
        assert loader.get("a.c", "default") == "default"
        assert loader.get("a.b.c") is None


class TestParseValue:

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("true", True),
            ("No", False),
            ("5", 5),
            ("0", 0),
            ("2.5", 2.5),
            ('{"a": 1}', {"a": 1}),
            ("[1, 2]", [1, 2]),
            ("{broken", "{broken"),
            ("https://api.test", "https://api.test"),
        ],
    )
    def test_parse(self, raw, expected):
        assert ConfigLoader()._parse_value(raw) == expected


# ============================================================================
# Settings
# ============================================================================


class TestSettings:

    def test_timeout_must_be_positive(self):
        with pytest.raises(ConfigInvalidFault) as exc_info:
            Settings(timeout=0)
        assert exc_info.value.metadata["key"] == "timeout"

    def test_timeout_must_be_numeric(self):
        with pytest.raises(ConfigInvalidFault):
            ConfigLoader.load(overrides={"timeout": "soon"}).settings()

    def test_headers_must_be_mapping(self):
        with pytest.raises(ConfigInvalidFault):
            Settings(headers=["X-App"])

    def test_unknown_keys_are_ignored(self):
        settings = ConfigLoader.load(overrides={"base_url": "https://a.test", "extra": 1}).settings()
        assert settings == Settings(base_url="https://a.test")

    def test_header_values_become_strings(self):
        assert Settings(headers={"X-Version": 2}).headers == {"X-Version": "2"}


class TestConfigure:

    def test_configure_installs_default_transport(self):
        transport = configure(base_url="https://api.test", timeout=5, headers={"X-App": "demo"})
        assert isinstance(transport, Transport)
        assert get_transport() is transport
        assert transport.base_url == "https://api.test"
        assert transport.timeout == 5.0
        assert transport.headers["X-App"] == "demo"

    def test_configure_from_file(self, tmp_path):
        path = tmp_path / "restmodel.yaml"
        path.write_text("base_url: https://file.test\n")
        assert configure([str(path)]).base_url == "https://file.test"

    def test_configure_rejects_bad_settings(self):
        with pytest.raises(ConfigInvalidFault):
            configure(timeout=-1)
