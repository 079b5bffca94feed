"""Configuration management for sessionlens.

Loads settings from a YAML configuration file. ``SESSIONLENS_*`` environment
variables override any YAML value, and the plain provider variables
(OPENAI_API_KEY, GOOGLE_API_KEY, ...) supply API keys. Supports .env files.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, SecretStr
from pydantic_settings import BaseSettings, EnvSettingsSource

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config/sessionlens.yaml")

DEFAULT_OPENAI_MODEL = "gpt-4o"
DEFAULT_GEMINI_MODEL = "gemini-2.0-flash"

GEMINI_OPENAI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"


class InferenceConfig(BaseModel):
    provider: Literal["openai", "anthropic"] = Field(default="openai")
    model: str = Field(default=DEFAULT_OPENAI_MODEL)
    base_url: str | None = Field(default=None)
    temperature: float = Field(default=0.3, ge=0.0, le=2.0)
    max_output_tokens: int = Field(default=2048, gt=0)
    timeout_seconds: float = Field(default=30.0, gt=0, description="Deadline for one inference call")
    max_image_dimension: int = Field(default=1568, gt=0)


class AnalysisConfig(BaseModel):
    strategy: Literal["auto", "vision", "priors", "heuristic"] = Field(default="auto")
    default_batch_size: int = Field(default=30, gt=0)
    max_batch_size: int = Field(default=100, gt=0)


class StorageConfig(BaseModel):
    database_path: str | None = Field(
        default="data/sessionlens.db", description="SQLite file; None keeps everything in memory"
    )
    screenshot_root: str = Field(default="data/screenshots")
    http_timeout: float = Field(default=10.0, gt=0)


class ServerConfig(BaseModel):
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8080, ge=1, le=65535)


class LoggingConfig(BaseModel):
    level: str = Field(default="INFO")
    format: str = Field(
        default="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    file: str | None = Field(default=None)


class Settings(BaseSettings):
    """Root configuration for the sessionlens system.

    Loads from YAML file and supports environment variable overrides.
    Reads .env files automatically.
    """

    model_config = {
        "env_prefix": "SESSIONLENS_",
        "env_nested_delimiter": "__",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    # API Keys
    openai_api_key: SecretStr = Field(default=SecretStr(""))
    anthropic_api_key: SecretStr = Field(default=SecretStr(""))
    google_api_key: SecretStr = Field(default=SecretStr(""))

    # Configuration sections
    inference: InferenceConfig = Field(default_factory=InferenceConfig)
    analysis: AnalysisConfig = Field(default_factory=AnalysisConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    def inference_api_key(self) -> str:
        """Return the key for the configured provider, or "" when unconfigured."""
        if self.inference.provider == "anthropic":
            return self.anthropic_api_key.get_secret_value()
        return self.openai_api_key.get_secret_value() or self.google_api_key.get_secret_value()

    @property
    def inference_configured(self) -> bool:
        return bool(self.inference_api_key())


def load_settings(config_path: Path | str | None = None) -> Settings:
    """Load settings from YAML + .env + environment variables.

    Priority: env vars > .env file > YAML file > defaults

    The .env file is copied into the process environment without replacing
    variables that are already set, so it ranks just below real env vars.
    ``SESSIONLENS_*`` variables (``__`` for nesting) are merged over the
    YAML values before the model is built.
    """
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH

    # Load .env file manually for non-prefixed vars
    _load_dotenv()

    yaml_data = {}
    if path.exists():
        with open(path) as f:
            yaml_data = yaml.safe_load(f) or {}
        logger.info("Loaded configuration from %s", path)
    else:
        logger.warning("Config file %s not found, using defaults + env vars", path)

    _apply_env_overrides(yaml_data)
    _deep_merge(yaml_data, EnvSettingsSource(Settings)())
    _select_gemini_endpoint(yaml_data)

    return Settings(**yaml_data)


def _load_dotenv() -> None:
    """Load .env file into os.environ if it exists."""
    env_path = Path(".env")
    if not env_path.exists():
        return
    with open(env_path) as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            if "=" in line:
                key, _, value = line.partition("=")
                key = key.strip()
                value = value.strip()
                if not os.environ.get(key):
                    os.environ[key] = value


def _section(data: dict, name: str) -> dict:
    section = data.get(name)
    if not isinstance(section, dict):
        section = data[name] = {}
    return section


def _deep_merge(base: dict, overrides: dict) -> dict:
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
    return base


def _apply_env_overrides(yaml_data: dict) -> None:
    """Apply environment variable overrides for non-prefixed vars."""
    for env_name, field_name in (
        ("OPENAI_API_KEY", "openai_api_key"),
        ("ANTHROPIC_API_KEY", "anthropic_api_key"),
        ("GOOGLE_API_KEY", "google_api_key"),
    ):
        value = os.environ.get(env_name, "")
        if value:
            yaml_data[field_name] = value

    inference = _section(yaml_data, "inference")
    for env_name, key in (("INFERENCE_MODEL", "model"), ("INFERENCE_BASE_URL", "base_url")):
        value = os.environ.get(env_name, "")
        if value:
            inference[key] = value


def _select_gemini_endpoint(data: dict) -> None:
    """A Google key alone means the Gemini OpenAI-compatible endpoint."""
    inference = _section(data, "inference")
    if (
        not data.get("google_api_key")
        or data.get("openai_api_key")
        or inference.get("base_url")
        or inference.get("provider", "openai") != "openai"
    ):
        return

    inference["base_url"] = GEMINI_OPENAI_BASE_URL
    model = str(inference.get("model") or "")
    # OpenAI model names are rejected by the Gemini endpoint.
    if not model or model.startswith("gpt-"):
        if model:
            logger.info("Only a Google key is set; using %s instead of %s", DEFAULT_GEMINI_MODEL, model)
        inference["model"] = DEFAULT_GEMINI_MODEL
