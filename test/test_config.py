from __future__ import annotations

from pathlib import Path

import pytest

from workflows_dump.core.config import DEFAULT_EXCLUDED_COLUMNS, Settings, _load_settings_overrides


def test_environment_variables_use_wf_prefix(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("WF_BASE", " https://acme.workflows.okta.com ")
    monkeypatch.setenv("WF_TIMEOUT", "12")
    monkeypatch.setenv("WF_MAX_WORKERS", "32")
    monkeypatch.setenv("WF_GROUP_FILTER", "Sales")
    monkeypatch.setenv("WF_USE_PLAYWRIGHT", "0")
    monkeypatch.setenv("WF_DEBUG", "1")
    monkeypatch.setenv("WF_AUTH_TOKEN", "  ")

    settings = Settings()

    assert settings.base == "https://acme.workflows.okta.com"
    assert settings.timeout == 12.0
    assert settings.pool_limit == 8
    assert settings.normalized_group_filter == "sales"
    assert settings.use_playwright is False
    assert settings.effective_log_level == "DEBUG"
    assert settings.auth_token is None


def test_defaults() -> None:
    settings = Settings(_env_file=None)

    assert settings.excluded_columns == DEFAULT_EXCLUDED_COLUMNS == frozenset({"stashId", "system"})
    assert settings.out_json == Path("workflows_dump.json")
    assert settings.out_dir == Path("exports")
    assert settings.sleep == 0.15


@pytest.mark.parametrize(("configured", "expected"), [(0, 1), (-3, 1), (4, 4), (100, 8)])
def test_pool_limit_is_clamped(configured: int, expected: int) -> None:
    assert Settings(max_workers=configured).pool_limit == expected


def test_secrets_file_overrides(tmp_path: Path) -> None:
    secrets = tmp_path / "secrets.toml"
    secrets.write_text(
        '[workflows]\nbase = "https://x.workflows.okta.com"\nauth_token = "Bearer abc"\n'
        'max_workers = 2\nunknown_key = "ignored"\n',
        encoding="utf-8",
    )

    overrides = _load_settings_overrides(secrets)

    assert overrides == {"base": "https://x.workflows.okta.com", "auth_token": "abc", "max_workers": 2}
    assert Settings(**overrides).pool_limit == 2


def test_missing_secrets_file_yields_no_overrides(tmp_path: Path) -> None:
    assert _load_settings_overrides(tmp_path / "absent.toml") == {}
