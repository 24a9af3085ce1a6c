"""
config/settings.py — CodeScout Runtime Settings

Merges config.yaml (structure/defaults) with environment variables and
.env (secrets). Pydantic-powered: every field is typed and validated.

  - Field validators reject bad values at parse time
  - validate_all() performs cross-field startup checks and raises
    ConfigError listing every problem found
  - load_settings() honors CODESCOUT_CONFIG when no explicit path is given
"""

from __future__ import annotations

import os
import threading as _threading
from pathlib import Path
from typing import Any, List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigError(Exception):
    """Raised by validate_all() when one or more config problems are found."""


_VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
_KNOWN_PROVIDERS = {"openai", "ollama"}
_KNOWN_SECTIONS = {"llm", "search", "logging"}


# ─────────────────────────────────────────────────────────────────────────────
# Sub-models
# ─────────────────────────────────────────────────────────────────────────────

class LLMRetryConfig(BaseModel):
    """Exponential backoff for transient transport errors."""
    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0

    @field_validator("max_attempts")
    @classmethod
    def _positive_attempts(cls, v: int) -> int:
        if v < 1:
            raise ValueError("llm.retry.max_attempts must be >= 1")
        return v


class LLMConfig(BaseModel):
    default_provider: str = "openai"
    default_model: str = "gpt-4o-mini"
    temperature: float = 0.2
    max_tokens: int = 4096
    timeout_seconds: float = 60.0
    retry: LLMRetryConfig = Field(default_factory=LLMRetryConfig)
    fallback_providers: List[str] = Field(default_factory=list)

    @field_validator("default_provider")
    @classmethod
    def _known_provider(cls, v: str) -> str:
        v = v.lower().strip()
        if v not in _KNOWN_PROVIDERS:
            raise ValueError(
                f"llm.default_provider '{v}' is not supported. "
                f"Supported: {sorted(_KNOWN_PROVIDERS)}"
            )
        return v

    @field_validator("temperature")
    @classmethod
    def _valid_temperature(cls, v: float) -> float:
        if not (0.0 <= v <= 2.0):
            raise ValueError("llm.temperature must be between 0.0 and 2.0")
        return v

    @field_validator("max_tokens")
    @classmethod
    def _positive_tokens(cls, v: int) -> int:
        if v < 1:
            raise ValueError("llm.max_tokens must be >= 1")
        return v

    @field_validator("timeout_seconds")
    @classmethod
    def _positive_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("llm.timeout_seconds must be > 0")
        return v


class SearchConfig(BaseModel):
    repo_root: str = "."
    index_path: str = "./data/tags.jsonl"
    max_rounds: int = 8
    max_session_seconds: float = 600.0
    file_result_cap: int = 20

    @field_validator("max_rounds")
    @classmethod
    def _positive_rounds(cls, v: int) -> int:
        if v < 1:
            raise ValueError("search.max_rounds must be >= 1")
        return v

    @field_validator("max_session_seconds")
    @classmethod
    def _positive_budget(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("search.max_session_seconds must be > 0")
        return v

    @field_validator("file_result_cap")
    @classmethod
    def _positive_cap(cls, v: int) -> int:
        if v < 1:
            raise ValueError("search.file_result_cap must be >= 1")
        return v


class LoggingConfig(BaseModel):
    level: str = "INFO"
    log_dir: str = "./data/logs"
    max_file_size_mb: int = 50
    backup_count: int = 5
    console_output: bool = False
    json_format: bool = True

    @field_validator("level")
    @classmethod
    def _valid_log_level(cls, v: str) -> str:
        upper = v.upper()
        if upper not in _VALID_LOG_LEVELS:
            raise ValueError(
                f"logging.level '{v}' is not valid. "
                f"Must be one of: {sorted(_VALID_LOG_LEVELS)}"
            )
        return upper


# ─────────────────────────────────────────────────────────────────────────────
# Root Settings
# ─────────────────────────────────────────────────────────────────────────────

class Settings(BaseSettings):
    """
    CodeScout runtime settings.

    Priority (highest to lowest):
      1. Environment variables
      2. .env file
      3. config.yaml
      4. Field defaults
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
        case_sensitive=False,
    )

    openai_api_key: Optional[str] = Field(default=None, alias="OPENAI_API_KEY")
    ollama_base_url: str = Field(default="http://localhost:11434", alias="OLLAMA_BASE_URL")

    llm: LLMConfig = Field(default_factory=LLMConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("llm", mode="before")
    @classmethod
    def _coerce_llm(cls, v: Any) -> Any:
        return LLMConfig(**v) if isinstance(v, dict) else v

    @field_validator("search", mode="before")
    @classmethod
    def _coerce_search(cls, v: Any) -> Any:
        return SearchConfig(**v) if isinstance(v, dict) else v

    @field_validator("logging", mode="before")
    @classmethod
    def _coerce_logging(cls, v: Any) -> Any:
        return LoggingConfig(**v) if isinstance(v, dict) else v

    # -- Convenience properties ----------------------------------------------

    @property
    def default_llm_provider(self) -> str:
        return self.llm.default_provider

    @property
    def default_llm_model(self) -> str:
        return self.llm.default_model

    @property
    def log_level(self) -> str:
        return self.logging.level.upper()

    @property
    def log_dir(self) -> Path:
        return Path(self.logging.log_dir)

    @property
    def ollama_base_url_v1(self) -> str:
        return self.ollama_base_url.rstrip("/") + "/v1"

    def api_key_for(self, provider: str) -> Optional[str]:
        if provider == "openai":
            return self.openai_api_key
        return None

    def validate_all(self) -> None:
        """
        Cross-field startup validation. Raises ConfigError listing every
        problem found; field-level problems were already rejected by Pydantic.
        """
        errors: list[str] = []

        if self.llm.default_provider == "openai" and not self.openai_api_key:
            errors.append(
                "LLM provider 'openai' requires OPENAI_API_KEY to be set "
                "in your environment or .env file."
            )

        for fp in self.llm.fallback_providers:
            fp = fp.lower().strip()
            if fp not in _KNOWN_PROVIDERS:
                errors.append(
                    f"Fallback provider '{fp}' is not supported. "
                    f"Supported: {sorted(_KNOWN_PROVIDERS)}"
                )
            elif fp == "openai" and not self.openai_api_key:
                errors.append(
                    "Fallback provider 'openai' requires OPENAI_API_KEY but it "
                    "is not set. Remove it from llm.fallback_providers or add the key."
                )

        if not Path(self.search.repo_root).expanduser().is_dir():
            errors.append(f"search.repo_root '{self.search.repo_root}' is not a directory.")

        if not Path(self.search.index_path).expanduser().is_file():
            errors.append(
                f"search.index_path '{self.search.index_path}' does not exist. "
                f"Point it at a tag dump produced by your indexer."
            )

        if errors:
            numbered = "\n".join(f"  {i+1}. {e}" for i, e in enumerate(errors))
            raise ConfigError(
                f"\n\nCodeScout startup failed — {len(errors)} configuration "
                f"problem(s) found:\n\n{numbered}\n\n"
                f"Fix the issues above in config/config.yaml or your .env file.\n"
            )


# ─────────────────────────────────────────────────────────────────────────────
# Loader + singleton
# ─────────────────────────────────────────────────────────────────────────────

_singleton: Optional[Settings] = None
_singleton_lock = _threading.Lock()


def _load_yaml(path: Path) -> dict:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _resolve_config_path(config_path: str | Path | None) -> Path:
    """
    Resolve the config file path:
      1. Explicit config_path argument (--config)
      2. CODESCOUT_CONFIG environment variable
      3. config/config.yaml
    """
    if config_path is not None:
        return Path(config_path)
    env_path = os.environ.get("CODESCOUT_CONFIG")
    if env_path:
        return Path(env_path)
    return Path("config/config.yaml")


def load_settings(config_path: str | Path | None = None) -> Settings:
    """Load settings by merging config.yaml with the environment."""
    global _singleton
    yaml_data = _load_yaml(_resolve_config_path(config_path))
    init_kwargs = {k: v for k, v in yaml_data.items() if k in _KNOWN_SECTIONS}

    instance = Settings(**init_kwargs)
    with _singleton_lock:
        _singleton = instance
    return instance


def get_settings() -> Settings:
    """Return the global Settings, loading from the default path on first use."""
    global _singleton
    if _singleton is not None:
        return _singleton
    with _singleton_lock:
        if _singleton is None:
            yaml_data = _load_yaml(_resolve_config_path(None))
            _singleton = Settings(**{k: v for k, v in yaml_data.items() if k in _KNOWN_SECTIONS})
    return _singleton
