from __future__ import annotations

import hashlib
from pathlib import Path

import pytest

from streamshelf.utils import expand_env, hash_text, load_yaml_file, params_digest, parse_env_bool, validate_url


class TestParseEnvBool:
    @pytest.mark.parametrize("value", ["1", "true", "TRUE", "yes", "on"])
    def test_parses_truthy_values(self, value: str) -> None:
        assert parse_env_bool(value) is True

    @pytest.mark.parametrize("value", ["0", "false", "no", "off"])
    def test_parses_falsy_values(self, value: str) -> None:
        assert parse_env_bool(value) is False

    def test_returns_none_for_none(self) -> None:
        assert parse_env_bool(None) is None

    def test_returns_none_for_unrecognized(self) -> None:
        assert parse_env_bool("maybe") is None

    def test_strips_whitespace(self) -> None:
        assert parse_env_bool("  yes ") is True


class TestValidateUrl:
    def test_accepts_http(self) -> None:
        assert validate_url("http://provider.example:8080") is True

    def test_accepts_https(self) -> None:
        assert validate_url("https://provider.example") is True

    def test_rejects_missing_scheme(self) -> None:
        assert validate_url("provider.example") is False

    def test_rejects_file_scheme(self) -> None:
        assert validate_url("file:///etc/passwd") is False

    def test_rejects_empty(self) -> None:
        assert validate_url("") is False
        assert validate_url(None) is False


class TestHashing:
    def test_hash_text_is_sha256(self) -> None:
        assert hash_text("abc") == hashlib.sha256(b"abc").hexdigest()

    def test_params_digest_is_order_independent(self) -> None:
        assert params_digest({"page": 1, "sort_by": "x"}) == params_digest({"sort_by": "x", "page": 1})

    def test_params_digest_distinguishes_values(self) -> None:
        assert params_digest({"page": 1}) != params_digest({"page": 2})

    def test_empty_params(self) -> None:
        assert params_digest(None) == params_digest({}) == hash_text("")


class TestYaml:
    def test_expand_env_nested(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SHELF_USER", "alice")
        assert expand_env({"a": ["$SHELF_USER", 1], "b": "${SHELF_USER}!"}) == {"a": ["alice", 1], "b": "alice!"}

    def test_empty_file_is_empty_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")
        assert load_yaml_file(path) == {}
