"""Tests for configuration loading and precedence resolution."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from shokolat.config import (
    ensure_cache_root,
    get_cache_dir,
    load_global_config,
    parse_listen,
    resolve_config,
    save_global_config,
)
from shokolat.exceptions import ConfigError
from shokolat.models import GlobalConfig, KeyPolicy, ProxyConfig, WriteBackPolicy


class TestParseListen:
    @pytest.mark.parametrize(
        ("address", "expected"),
        [
            (":8080", ("", 8080)),
            ("127.0.0.1:3128", ("127.0.0.1", 3128)),
            ("localhost:80", ("localhost", 80)),
            ("9000", ("", 9000)),
            ("[::1]:8443", ("::1", 8443)),
        ],
    )
    def test_valid(self, address: str, expected: tuple[str, int]) -> None:
        assert parse_listen(address) == expected

    @pytest.mark.parametrize("address", ["", ":", "host:", ":http", ":0", ":65536"])
    def test_invalid(self, address: str) -> None:
        with pytest.raises(ConfigError):
            parse_listen(address)


class TestGlobalConfig:
    def test_missing_file_gives_defaults(self, isolated_config: Path) -> None:
        config = load_global_config()
        assert config == GlobalConfig()
        assert config.listen == ":8080"
        assert config.cache_list == "cachelist.txt"

    def test_save_and_load(self, isolated_config: Path) -> None:
        save_global_config(GlobalConfig(cache_root="/srv/mirror", key_policy=KeyPolicy.BASENAME))
        loaded = load_global_config()
        assert loaded.cache_root == "/srv/mirror"
        assert loaded.key_policy == KeyPolicy.BASENAME

    def test_invalid_json(self, isolated_config: Path) -> None:
        path = isolated_config / "config" / "shokolat" / "config.json"
        path.parent.mkdir(parents=True)
        path.write_text("{not json")
        with pytest.raises(ConfigError, match="Invalid global config"):
            load_global_config()


class TestResolveConfig:
    def test_defaults(self, isolated_config: Path) -> None:
        config = resolve_config()
        assert config.cache_root == get_cache_dir() / "mirror"
        assert config.listen_host == ""
        assert config.listen_port == 8080
        assert config.listen == ":8080"
        assert config.cache_list == Path("cachelist.txt")
        assert config.verbose is False
        assert config.key_policy == KeyPolicy.FULL_PATH
        assert config.write_back == WriteBackPolicy.ALWAYS

    def test_global_file_overrides_defaults(self, isolated_config: Path) -> None:
        save_global_config(GlobalConfig(listen="127.0.0.1:3128"))
        assert resolve_config().listen == "127.0.0.1:3128"

    def test_project_file_overrides_global(self, isolated_config: Path) -> None:
        save_global_config(GlobalConfig(cache_list="global.txt"))
        (isolated_config / "shokolat.json").write_text(
            json.dumps({"cache_list": "project.txt", "unknown": 1})
        )
        assert resolve_config().cache_list == Path("project.txt")

    def test_project_file_must_be_an_object(self, isolated_config: Path) -> None:
        (isolated_config / "shokolat.json").write_text("[1, 2]")
        with pytest.raises(ConfigError, match="JSON object"):
            resolve_config()

    def test_env_overrides_project(
        self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        (isolated_config / "shokolat.json").write_text(json.dumps({"listen": ":1111"}))
        monkeypatch.setenv("SHOKOLAT_LISTEN", ":2222")
        monkeypatch.setenv("SHOKOLAT_VERBOSE", "yes")
        monkeypatch.setenv("SHOKOLAT_WRITE_BACK", "match_gated")
        config = resolve_config()
        assert config.listen_port == 2222
        assert config.verbose is True
        assert config.write_back == WriteBackPolicy.MATCH_GATED

    @pytest.mark.parametrize("word", ["1", "true", "YES", "on"])
    def test_env_booleans_share_config_set_spellings(
        self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch, word: str
    ) -> None:
        monkeypatch.setenv("SHOKOLAT_VERBOSE", word)
        monkeypatch.setenv("SHOKOLAT_INTERCEPT_TLS", word)
        config = resolve_config()
        assert config.verbose is True
        assert config.intercept_tls is True

    def test_tls_is_tunnelled_unless_enabled(
        self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        assert resolve_config().intercept_tls is False
        monkeypatch.setenv("SHOKOLAT_INTERCEPT_TLS", "on")
        assert resolve_config(intercept_tls=False).intercept_tls is False

    def test_cli_overrides_env(
        self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("SHOKOLAT_CACHE_ROOT", "/from/env")
        monkeypatch.setenv("SHOKOLAT_KEY_POLICY", "basename")
        config = resolve_config(cache_root="/from/cli", key_policy="full_path")
        assert config.cache_root == Path("/from/cli")
        assert config.key_policy == KeyPolicy.FULL_PATH

    def test_unset_cli_values_do_not_override(
        self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("SHOKOLAT_CACHE_LIST", "env.txt")
        assert resolve_config(cache_list=None).cache_list == Path("env.txt")

    def test_invalid_policy(self, isolated_config: Path) -> None:
        with pytest.raises(ConfigError, match="Invalid configuration"):
            resolve_config(key_policy="by_hash")

    def test_invalid_listen(self, isolated_config: Path) -> None:
        with pytest.raises(ConfigError):
            resolve_config(listen=":99999")

    def test_result_is_frozen(self, isolated_config: Path) -> None:
        config = resolve_config()
        with pytest.raises(ValidationError):
            config.listen_port = 1  # type: ignore[misc]


class TestProxyConfig:
    def test_port_range(self, tmp_path: Path) -> None:
        with pytest.raises(ValidationError):
            ProxyConfig(cache_root=tmp_path, listen_port=0)


class TestEnsureCacheRoot:
    def test_creates_nested_directories(self, tmp_path: Path) -> None:
        root = tmp_path / "a" / "b" / "mirror"
        assert ensure_cache_root(root) == root
        assert root.is_dir()

    def test_existing_directory(self, cache_root: Path) -> None:
        (cache_root / "kept.png").write_bytes(b"x")
        ensure_cache_root(cache_root)
        assert (cache_root / "kept.png").exists()

    def test_unusable_path(self, tmp_path: Path) -> None:
        blocker = tmp_path / "file"
        blocker.write_text("x")
        with pytest.raises(ConfigError, match="Cannot create cache root"):
            ensure_cache_root(blocker / "mirror")
