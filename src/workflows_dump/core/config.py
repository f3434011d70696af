"""Application configuration primitives."""

from __future__ import annotations

import tomllib
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SECRETS_PATH = Path(".secrets/secrets.toml")
DEFAULT_EXCLUDED_COLUMNS: frozenset[str] = frozenset({"stashId", "system"})
MAX_POOL_WORKERS = 8


class Settings(BaseSettings):
    """Central configuration for the workflows export."""

    host: str = ""
    base: str = ""
    out_json: Path = Path("workflows_dump.json")
    out_dir: Path = Path("exports")
    timeout: float = 60.0
    sleep: float = 0.15
    group_filter: str = ""
    auth_token: str | None = None
    debug: bool = False
    use_playwright: bool = True
    max_workers: int = 8
    pw_profile_dir: Path = Path.home() / ".okta-workflows-pw"
    excluded_columns: frozenset[str] = DEFAULT_EXCLUDED_COLUMNS
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    user_agent: str = "okta-workflows-dump-python/1.0"

    model_config = SettingsConfigDict(env_prefix="WF_", env_file=(), extra="ignore")

    @field_validator("host", "base", "group_filter", mode="before")
    @classmethod
    def _strip_text(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator("auth_token", mode="before")
    @classmethod
    def _clean_token(cls, value: Any) -> Any:
        if isinstance(value, str):
            return _sanitize_token(value)
        return value

    @property
    def effective_log_level(self) -> str:
        return "DEBUG" if self.debug else self.log_level

    @property
    def pool_limit(self) -> int:
        """Concurrency bound for table exports, clamped to 1..MAX_POOL_WORKERS."""
        return max(1, min(self.max_workers, MAX_POOL_WORKERS))

    @property
    def normalized_group_filter(self) -> str:
        return self.group_filter.lower()


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached settings instance."""
    overrides = _load_settings_overrides()
    return Settings(**overrides)


def _load_settings_overrides(secrets_path: Path = DEFAULT_SECRETS_PATH) -> dict[str, Any]:
    """Load configuration overrides from the secrets TOML file."""
    if not secrets_path.exists():
        return {}
    data = _read_toml(secrets_path)
    section = _extract_section(data, "workflows", "okta_workflows", "wf")
    if not section:
        return {}
    overrides = {key: value for key, value in section.items() if key in Settings.model_fields}
    token = section.get("auth_token") or section.get("authorization")
    if token:
        overrides["auth_token"] = _sanitize_token(str(token))
    return {key: value for key, value in overrides.items() if value is not None}


def _read_toml(path: Path) -> dict[str, Any]:
    with path.open("rb") as handle:
        return tomllib.load(handle)


def _extract_section(data: dict[str, Any], *candidates: str) -> dict[str, Any] | None:
    for key in candidates:
        section = data.get(key)
        if isinstance(section, dict):
            return section
    return None


def _sanitize_token(value: str) -> str | None:
    token = value.strip()
    if token.lower().startswith("bearer "):
        token = token[7:].strip()
    return token or None
