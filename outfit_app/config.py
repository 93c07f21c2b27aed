"""Configuration helpers for the outfit recommender."""

from dataclasses import dataclass
from pathlib import Path
import os
from typing import Optional

from dotenv import load_dotenv

DEFAULT_LLM_BASE_URL = "https://api.deepseek.com/v1"
DEFAULT_LLM_MODEL = "deepseek-chat"
DEFAULT_WEATHER_BASE_URL = "https://api.qweather.com/v7"


@dataclass
class AppConfig:
    """Configuration values for the recommender and its upstream services.

    Every outbound service carries its own timeout so that no call in the
    pipeline is unbounded.
    """

    milvus_uri: str = "http://localhost:19530"
    milvus_token: Optional[str] = None
    collection_name: str = "outfit_preferences"
    embedding_backend: str = "http"
    embedding_url: str = "http://localhost:8000/embed"
    embedding_dimension: int = 768
    llm_api_key: Optional[str] = None
    llm_base_url: str = DEFAULT_LLM_BASE_URL
    llm_model: str = DEFAULT_LLM_MODEL
    weather_api_key: Optional[str] = None
    weather_base_url: str = DEFAULT_WEATHER_BASE_URL
    default_location: str = "Shanghai"
    default_preference: str = "casual"
    rules_path: str = "data/clothing_rules.json"
    top_k: int = 3
    embedding_timeout_seconds: float = 10.0
    store_timeout_seconds: float = 5.0
    weather_timeout_seconds: float = 5.0
    llm_timeout_seconds: float = 30.0
    request_deadline_seconds: Optional[float] = 60.0
    environment: str | None = None

    @classmethod
    def from_env(cls, dotenv_path: str | None = None) -> "AppConfig":
        """Build a config from environment variables or an environment YAML file.

        A ``.env`` file is loaded first without overriding variables that are
        already set. Environment specific YAML lives in
        ``config/environments/<env>.yaml`` by default and is used for any key
        the environment does not provide.
        """

        load_dotenv(dotenv_path=dotenv_path, override=False)

        env_name = os.getenv("APP_ENV")
        config_path = os.getenv("APP_CONFIG_PATH")
        config_dir = Path(os.getenv("APP_CONFIG_DIR", "config/environments"))
        yaml_config: dict = {}

        if config_path:
            path = Path(config_path)
        elif env_name:
            path = config_dir / f"{env_name}.yaml"
        else:
            path = None

        if path and path.exists():
            yaml_config = cls._load_yaml_config(path)

        def get_value(key: str, default: Optional[str] = None, env_key: str | None = None) -> Optional[str]:
            return os.getenv(env_key or key.upper(), yaml_config.get(key, default))

        defaults = cls()
        deadline = get_value("request_deadline_seconds")

        return cls(
            milvus_uri=str(get_value("milvus_uri", defaults.milvus_uri)),
            milvus_token=get_value("milvus_token"),
            collection_name=str(get_value("collection_name", defaults.collection_name)),
            embedding_backend=str(get_value("embedding_backend", defaults.embedding_backend)).lower(),
            embedding_url=str(get_value("embedding_url", defaults.embedding_url)),
            embedding_dimension=int(get_value("embedding_dimension", str(defaults.embedding_dimension))),
            llm_api_key=get_value("llm_api_key", env_key="DEEPSEEK_API_KEY"),
            llm_base_url=str(get_value("llm_base_url", defaults.llm_base_url)),
            llm_model=str(get_value("llm_model", defaults.llm_model)),
            weather_api_key=get_value("weather_api_key", env_key="WEATHER_API_TOKEN"),
            weather_base_url=str(get_value("weather_base_url", defaults.weather_base_url)),
            default_location=str(get_value("default_location", defaults.default_location)),
            default_preference=str(get_value("default_preference", defaults.default_preference)),
            rules_path=str(get_value("rules_path", defaults.rules_path)),
            top_k=int(get_value("top_k", str(defaults.top_k))),
            embedding_timeout_seconds=float(
                get_value("embedding_timeout_seconds", str(defaults.embedding_timeout_seconds))
            ),
            store_timeout_seconds=float(get_value("store_timeout_seconds", str(defaults.store_timeout_seconds))),
            weather_timeout_seconds=float(
                get_value("weather_timeout_seconds", str(defaults.weather_timeout_seconds))
            ),
            llm_timeout_seconds=float(get_value("llm_timeout_seconds", str(defaults.llm_timeout_seconds))),
            request_deadline_seconds=float(deadline) if deadline else defaults.request_deadline_seconds,
            environment=env_name,
        )

    @staticmethod
    def _load_yaml_config(path: Path) -> dict:
        """Parse a minimal YAML/INI-style config without external dependencies."""

        config: dict[str, str] = {}
        for line in path.read_text().splitlines():
            stripped = line.strip()
            if not stripped or stripped.startswith("#"):
                continue
            if ":" not in stripped:
                continue
            key, raw_value = stripped.split(":", 1)
            value = raw_value.strip()
            if (value.startswith("\"") and value.endswith("\"")) or (
                value.startswith("'") and value.endswith("'")
            ):
                value = value[1:-1]
            config[key.strip()] = value
        return config
