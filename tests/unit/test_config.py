"""Unit tests for app/config.py.

Covers:
  - defaults when no file is present
  - YAML file discovery (argument, LIBPULSE_CONFIG, .libpulse/config.yaml)
  - version / mapping validation → SystemExit(1)
  - environment overrides win over the file; secrets only from env
  - missing required secrets → SystemExit(1) with the variable names on stderr
"""

from __future__ import annotations

from pathlib import Path

import pytest

from app import config as config_module
from app.config import REQUIRED_ENV_VARS, Config, load_config
from tests.helpers import REQUIRED_ENV, TEST_JWT_SECRET, TEST_PEPPER


@pytest.fixture(autouse=True)
def isolated_search_paths(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Run from an empty directory and ignore ~/.libpulse."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(config_module, "DEFAULT_CONFIG_PATHS", [".libpulse/config.yaml"])


def _write(path: Path, text: str) -> str:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)
    return str(path)


class TestDefaults:
    def test_defaults_without_file(self) -> None:
        config = load_config()
        assert config.path is None
        assert config.server.host == "0.0.0.0"
        assert config.server.port == 8080
        assert config.cors.allowed_origins == ["http://localhost:3000", "http://localhost:8080"]
        assert config.rate_limits.burst_max == 3
        assert config.rate_limits.burst_window_s == 60.0
        assert config.rate_limits.daily_max == 5
        assert config.rate_limits.daily_window_s == 86400.0
        assert config.supabase.timeout_s == 5.0
        assert config.auth.jwt_audience is None

    def test_secrets_from_env(self) -> None:
        config = load_config()
        assert config.auth.jwt_secret == TEST_JWT_SECRET
        assert config.auth.secret_pepper == TEST_PEPPER
        assert config.supabase.service_role_key == REQUIRED_ENV["SUPABASE_SERVICE_ROLE_KEY"]
        assert config.supabase.auth_url == REQUIRED_ENV["SUPABASE_AUTH_URL"]
        assert config.supabase.rest_url == "https://example.supabase.co/rest/v1"

    def test_trailing_slashes_stripped(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SUPABASE_AUTH_URL", "https://x.supabase.co/auth/v1/")
        monkeypatch.setenv("SUPABASE_PROJECT_URL", "https://x.supabase.co/")
        config = load_config()
        assert config.supabase.auth_url == "https://x.supabase.co/auth/v1"
        assert config.supabase.rest_url == "https://x.supabase.co/rest/v1"

    def test_secrets_hidden_from_repr(self) -> None:
        text = repr(load_config())
        assert TEST_JWT_SECRET not in text
        assert TEST_PEPPER not in text

    def test_config_defaults_classmethod(self) -> None:
        assert Config.defaults() == Config()


class TestRequiredSecrets:
    @pytest.mark.parametrize("name", REQUIRED_ENV_VARS)
    def test_missing_secret_exits(
        self, name: str, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        monkeypatch.delenv(name)
        with pytest.raises(SystemExit) as exc_info:
            load_config()
        assert exc_info.value.code == 1
        assert name in capsys.readouterr().err

    def test_empty_secret_counts_as_missing(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LIBPULSE_SECRET_PEPPER", "")
        with pytest.raises(SystemExit):
            load_config()

    def test_require_secrets_false(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for name in REQUIRED_ENV_VARS:
            monkeypatch.delenv(name)
        config = load_config(require_secrets=False)
        assert config.auth.jwt_secret == ""


class TestConfigFile:
    def test_explicit_path(self, tmp_path: Path) -> None:
        path = _write(
            tmp_path / "custom.yaml",
            "version: 1\n"
            "server:\n  host: 127.0.0.1\n  port: 9000\n"
            "rate_limits:\n  burst_max: 10\n  daily_window_s: 3600\n",
        )
        config = load_config(path)
        assert config.path == path
        assert config.server.host == "127.0.0.1"
        assert config.server.port == 9000
        assert config.rate_limits.burst_max == 10
        assert config.rate_limits.daily_window_s == 3600.0
        assert config.rate_limits.daily_max == 5

    def test_env_var_path(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        path = _write(tmp_path / "env.yaml", "version: 1\nsupabase:\n  timeout_s: 2.5\n")
        monkeypatch.setenv("LIBPULSE_CONFIG", path)
        assert load_config().supabase.timeout_s == 2.5

    def test_working_directory_default(self, tmp_path: Path) -> None:
        _write(tmp_path / ".libpulse" / "config.yaml", "version: 1\nauth:\n  jwt_audience: authenticated\n")
        assert load_config().auth.jwt_audience == "authenticated"

    def test_cors_list_and_string(self, tmp_path: Path) -> None:
        as_list = _write(
            tmp_path / "a.yaml",
            "version: 1\ncors:\n  allowed_origins:\n    - https://app.libpulse.dev\n",
        )
        as_string = _write(
            tmp_path / "b.yaml",
            "version: 1\ncors:\n  allowed_origins: 'https://a.dev, https://b.dev'\n",
        )
        assert load_config(as_list).cors.allowed_origins == ["https://app.libpulse.dev"]
        assert load_config(as_string).cors.allowed_origins == ["https://a.dev", "https://b.dev"]

    def test_secrets_in_file_are_ignored(self, tmp_path: Path) -> None:
        path = _write(
            tmp_path / "c.yaml",
            "version: 1\nauth:\n  jwt_secret: from-file\n  secret_pepper: from-file\n",
        )
        config = load_config(path)
        assert config.auth.jwt_secret == TEST_JWT_SECRET
        assert config.auth.secret_pepper == TEST_PEPPER

    @pytest.mark.parametrize(
        "text",
        [
            "",
            "server:\n  port: 9000\n",
            "version: 2\n",
            "- just\n- a list\n",
            "version: 1\nserver: [unclosed\n",
            "version: 1\nserver:\n  port: eighty\n",
            "version: 1\nrate_limits:\n  burst_window_s: soon\n",
        ],
    )
    def test_invalid_file_exits(
        self, text: str, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        path = _write(tmp_path / "bad.yaml", text)
        with pytest.raises(SystemExit) as exc_info:
            load_config(path)
        assert exc_info.value.code == 1
        assert "CONFIG ERROR" in capsys.readouterr().err


class TestEnvOverrides:
    def test_env_wins_over_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        path = _write(
            tmp_path / "d.yaml",
            "version: 1\nserver:\n  host: 127.0.0.1\n  port: 9000\n"
            "cors:\n  allowed_origins: ['https://file.dev']\n",
        )
        monkeypatch.setenv("LIBPULSE_HOST", "10.0.0.5")
        monkeypatch.setenv("LIBPULSE_PORT", "9100")
        monkeypatch.setenv("CORS_ALLOWED_ORIGINS", "https://env.dev , https://other.dev,")
        config = load_config(path)
        assert config.server.host == "10.0.0.5"
        assert config.server.port == 9100
        assert config.cors.allowed_origins == ["https://env.dev", "https://other.dev"]

    def test_audience_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SUPABASE_JWT_AUDIENCE", "authenticated")
        assert load_config().auth.jwt_audience == "authenticated"

    def test_invalid_port_exits(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LIBPULSE_PORT", "http")
        with pytest.raises(SystemExit):
            load_config()
