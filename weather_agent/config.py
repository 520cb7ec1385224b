import json
import logging
import os
from pathlib import Path
from typing import List

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

# Load .env file if it exists (before reading os.getenv)
_env_path = Path(__file__).resolve().parent.parent / ".env"
if _env_path.exists():
    with open(_env_path, encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if line and not line.startswith("#") and "=" in line:
                key, _, value = line.partition("=")
                key = key.strip()
                value = value.strip().strip('"').strip("'")
                # Only set if not already in environment (env vars take precedence)
                if key not in os.environ:
                    os.environ[key] = value


def _sanitize_ascii(val: str) -> str:
    """Strip non-ASCII characters from config values (prevents encoding errors)"""
    return val.encode('ascii', errors='ignore').decode('ascii').strip()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Settings(BaseModel):
    # Chat completion backend (any OpenAI-compatible server)
    chat_endpoint: str = _sanitize_ascii(os.getenv("CHAT_ENDPOINT", ""))
    chat_model_id: str = _sanitize_ascii(os.getenv("CHAT_MODEL_ID", ""))
    chat_api_key: str = _sanitize_ascii(os.getenv("CHAT_API_KEY", ""))
    chat_max_tokens: int = int(os.getenv("CHAT_MAX_TOKENS", "2048"))
    chat_temperature: float = float(os.getenv("CHAT_TEMPERATURE", "0.7"))

    # Tool providers
    plugins_config: str = os.getenv("PLUGINS_CONFIG", "plugins.json")
    plugin_timeout_s: float = float(os.getenv("PLUGIN_TIMEOUT", "30"))
    plugin_verify_ssl: bool = _env_bool("PLUGIN_VERIFY_SSL", "true")

    # Session
    clear_history: bool = _env_bool("CLEAR_HISTORY", "false")
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()

    @property
    def chat_configured(self) -> bool:
        return bool(self.chat_endpoint and self.chat_model_id)


class PluginEndpoint(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    plugin_name: str = Field(alias="PluginName")
    swagger_url: str = Field(alias="SwaggerUrl")
    description: str = Field(default="", alias="Description")


class PluginConfiguration(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    plugin_endpoints: List[PluginEndpoint] = Field(default_factory=list, alias="PluginEndpoints")


def load_plugin_config(path: str) -> PluginConfiguration:
    """Read plugin endpoints from a JSON file.

    Accepts either {"plugin_endpoints": [...]} or the appsettings layout
    {"Plugins": {"PluginEndpoints": [...]}}.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise ConfigurationError(f"Plugin config not found: {config_path}")

    try:
        with open(config_path, encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Plugin config {config_path} is not valid JSON: {e}") from e

    if isinstance(data, dict) and "Plugins" in data:
        data = data["Plugins"]
    try:
        config = PluginConfiguration.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Plugin config {config_path} is malformed: {e}") from e
    logger.info(f"Config: {len(config.plugin_endpoints)} plugin endpoint(s) from {config_path}")
    return config


settings = Settings()

# Log config for debugging
_chat_key = '***' + settings.chat_api_key[-4:] if len(settings.chat_api_key) > 4 else 'EMPTY'
logger.info(f"Config: Chat → {settings.chat_endpoint or 'UNSET'}, model={settings.chat_model_id or 'UNSET'} (key={_chat_key})")
