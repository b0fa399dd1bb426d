# tests/test_loader.py
"""
Tests for the config-file source and the public entry points.

Covers:
    - YAML / JSON / TOML decoding into dataclasses, dotenv into os.environ
    - file-then-environment layering and the default-over-zero rule
    - read_config / read_env / update_env / load_config
    - decode_into() edge cases
"""

import json
import os
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional
from urllib.parse import ParseResult

import pytest

from confbind.exceptions import FileParseError, RequiredFieldMissing, UnsupportedFileFormat
from confbind.loader import decode_into, load_config, read_config, read_env, update_env
from confbind.provenance import ProvenanceStore
from confbind.struct_reader import env_field


@dataclass
class Server:
    host: str = env_field("SRV_HOST", env_default="0.0.0.0", default="")
    port: int = env_field("SRV_PORT", env_default="8080", default=0)


@dataclass
class AppConfig:
    a: int = env_field("CB_A", env_default="10", default=0)
    name: str = env_field("CB_APP_NAME", default="")
    log_level: str = env_field("CB_LOG_LEVEL", upd=True, key="logLevel", default="info")
    hosts: list[str] = env_field("CB_HOSTS", default_factory=list)
    limits: dict[str, int] = env_field("CB_LIMITS", default_factory=dict)
    ratio: float = 0.0
    timeout: Optional[timedelta] = env_field("CB_TIMEOUT", default=None)
    started: Optional[datetime] = env_field("CB_STARTED", default=None)
    endpoint: Optional[ParseResult] = env_field("CB_ENDPOINT", default=None)
    server: Server = env_field(prefix="CB_", default_factory=Server)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("CB_A", "CB_APP_NAME", "CB_LOG_LEVEL", "CB_HOSTS", "CB_LIMITS", "CB_TIMEOUT",
                 "CB_STARTED", "CB_ENDPOINT", "CB_SRV_HOST", "CB_SRV_PORT", "CB_FROM_DOTENV"):
        # set first so monkeypatch restores the variable afterwards
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)


@pytest.fixture
def yaml_cfg(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "a: 5\n"
        "name: from-yaml\n"
        "logLevel: warn\n"
        "hosts: [one, two]\n"
        "limits: {cpu: '2', mem: 512}\n"
        "ratio: 1\n"
        "timeout: 1m30s\n"
        "started: 2024-03-01T12:00:00Z\n"
        "endpoint: https://api.example.com/v1\n"
        "server:\n"
        "  host: 127.0.0.1\n"
        "unknown: ignored\n"
    )
    return str(path)


@pytest.fixture
def json_cfg(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"a": 5, "Name": "from-json", "server": {"port": "9000"}}))
    return str(path)


# ---------------------------------------------------------------------------
# File formats
# ---------------------------------------------------------------------------


class TestFileFormats:

    def test_yaml(self, yaml_cfg):
        cfg = read_config(yaml_cfg, AppConfig())
        assert cfg.a == 5
        assert cfg.name == "from-yaml"
        assert cfg.log_level == "warn"
        assert cfg.hosts == ["one", "two"]
        assert cfg.limits == {"cpu": 2, "mem": 512}
        assert cfg.ratio == 1.0 and isinstance(cfg.ratio, float)
        assert cfg.timeout == timedelta(minutes=1, seconds=30)
        assert cfg.started.year == 2024
        assert cfg.endpoint.netloc == "api.example.com"
        assert cfg.server.host == "127.0.0.1"
        # not in the file: default from the environment pass
        assert cfg.server.port == 8080

    def test_json_case_insensitive_keys(self, json_cfg):
        cfg = read_config(json_cfg, AppConfig())
        assert cfg.name == "from-json"
        assert cfg.server.port == 9000

    def test_toml(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text('a = 7\nhosts = ["x"]\n\n[server]\nhost = "10.0.0.1"\nport = 81\n')
        cfg = read_config(str(path), AppConfig())
        assert cfg.a == 7
        assert cfg.hosts == ["x"]
        assert (cfg.server.host, cfg.server.port) == ("10.0.0.1", 81)

    def test_dotenv_goes_through_environment(self, tmp_path):
        path = tmp_path / ".env"
        path.write_text("CB_APP_NAME=from-dotenv\nCB_SRV_PORT=7000\n# comment\n")
        cfg = read_config(str(path), AppConfig())
        assert os.environ["CB_APP_NAME"] == "from-dotenv"
        assert cfg.name == "from-dotenv"
        assert cfg.server.port == 7000

    def test_dotenv_overrides_existing_environment(self, tmp_path, monkeypatch):
        monkeypatch.setenv("CB_APP_NAME", "before")
        path = tmp_path / "prod.env"
        path.write_text("CB_APP_NAME=after\n")
        cfg = read_config(str(path), AppConfig())
        assert cfg.name == "after"

    def test_unsupported_extension(self, tmp_path):
        path = tmp_path / "config.ini"
        path.write_text("[x]\n")
        with pytest.raises(UnsupportedFileFormat) as exc_info:
            read_config(str(path), AppConfig())
        assert exc_info.value.extension == ".ini"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            read_config(str(tmp_path / "nope.yaml"), AppConfig())

    def test_malformed_yaml(self, tmp_path):
        path = tmp_path / "bad.yml"
        path.write_text("a: [unclosed\n")
        with pytest.raises(FileParseError):
            read_config(str(path), AppConfig())

    def test_bad_value_in_file(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text('{"a": "five"}')
        with pytest.raises(FileParseError, match="five"):
            read_config(str(path), AppConfig())

    def test_non_mapping_document(self, tmp_path):
        path = tmp_path / "list.json"
        path.write_text("[1, 2]")
        with pytest.raises(FileParseError):
            read_config(str(path), AppConfig())

    def test_empty_yaml(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        cfg = read_config(str(path), AppConfig())
        assert cfg.a == 10

    def test_expands_env_var_path(self, tmp_path, monkeypatch, json_cfg):
        monkeypatch.setenv("CB_CONF_DIR", str(tmp_path))
        cfg = read_config("$CB_CONF_DIR/config.json", AppConfig())
        assert cfg.name == "from-json"


# ---------------------------------------------------------------------------
# Layering
# ---------------------------------------------------------------------------


class TestLayering:

    def test_file_value_survives_default(self, yaml_cfg):
        cfg = read_config(yaml_cfg, AppConfig())
        assert cfg.a == 5

    def test_env_beats_file(self, yaml_cfg, monkeypatch):
        monkeypatch.setenv("CB_A", "42")
        cfg = read_config(yaml_cfg, AppConfig())
        assert cfg.a == 42

    def test_file_then_env_only_pass(self, yaml_cfg):
        cfg = read_config(yaml_cfg, AppConfig())
        read_env(cfg)
        assert cfg.a == 5

    def test_required_satisfied_by_file(self, tmp_path):
        @dataclass
        class Needs:
            token: str = env_field("CB_TOKEN_REQ", required=True, default="")

        path = tmp_path / "t.json"
        path.write_text('{"token": "abc"}')
        with pytest.raises(RequiredFieldMissing):
            read_env(Needs())
        assert read_config(str(path), Needs()).token == "abc"


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------


class TestEntryPoints:

    def test_read_env_defaults(self):
        cfg = read_env(AppConfig())
        assert cfg.a == 10
        assert (cfg.server.host, cfg.server.port) == ("0.0.0.0", 8080)

    def test_update_env_skips_non_updatable(self, monkeypatch):
        cfg = read_env(AppConfig())
        monkeypatch.setenv("CB_LOG_LEVEL", "debug")
        monkeypatch.setenv("CB_APP_NAME", "renamed")
        update_env(cfg)
        assert cfg.log_level == "debug"
        assert cfg.name == ""

    def test_load_config_without_path(self):
        assert load_config("", AppConfig()).a == 10
        assert load_config(None, AppConfig()).a == 10

    def test_load_config_with_path(self, json_cfg):
        assert load_config(json_cfg, AppConfig()).name == "from-json"

    def test_provenance_file_then_env(self, json_cfg, monkeypatch):
        monkeypatch.setenv("CB_SRV_PORT", "9100")
        store = ProvenanceStore()
        read_config(json_cfg, AppConfig(), provenance=store)
        assert store.get("a").source.startswith("file:")
        history = store.get_history("server.port")
        assert [e.kind for e in history] == ["file", "env"]
        assert history[-1].value == 9100


# ---------------------------------------------------------------------------
# decode_into
# ---------------------------------------------------------------------------


class TestDecodeInto:

    def test_creates_missing_nested_instance(self):
        @dataclass
        class Holder:
            server: Optional[Server] = None

        holder = Holder()
        decode_into(holder, {"server": {"port": 1}})
        assert holder.server == Server(host="", port=1)

    def test_scalar_into_string_field(self):
        cfg = AppConfig()
        decode_into(cfg, {"name": 123})
        assert cfg.name == "123"

    def test_frozen_structure_left_alone(self):
        @dataclass(frozen=True)
        class Fixed:
            a: int = 1

        fixed = Fixed()
        decode_into(fixed, {"a": 2})
        assert fixed.a == 1
