"""
Root conftest: isolate provider environment variables so Settings() in
tests never sees a developer's real keys or .env file.
"""
import pytest

_PROVIDER_ENV_VARS = [
    "OPENAI_API_KEY",
    "OLLAMA_BASE_URL",
    "CODESCOUT_CONFIG",
]


@pytest.fixture(autouse=True)
def _clear_provider_env(monkeypatch):
    """Remove provider env vars for every test and disable .env loading.
    Tests that need a key set it explicitly with monkeypatch.setenv."""
    for var in _PROVIDER_ENV_VARS:
        monkeypatch.delenv(var, raising=False)

    import config.settings as settings_module
    from pydantic_settings import SettingsConfigDict
    patched_config = SettingsConfigDict(
        env_file=None,
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
        case_sensitive=False,
    )
    monkeypatch.setattr(settings_module.Settings, "model_config", patched_config)
