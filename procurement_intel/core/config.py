from pydantic import Field
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    app_name: str = Field("procurement-intel", alias="APP_NAME")
    app_env: str = Field("dev", alias="APP_ENV")

    # Logging
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")

    # LLM extraction provider (optional - pattern extraction is used when unset)
    llm_base_url: str | None = Field(default=None, alias="LLM_BASE_URL")
    llm_api_key: str | None = Field(default=None, alias="LLM_API_KEY")
    llm_deployment: str | None = Field(default=None, alias="LLM_DEPLOYMENT")
    llm_timeout_seconds: float = Field(60.0, alias="LLM_TIMEOUT_SECONDS")
    prompt_template_id: str = Field("procurement-extraction-v2", alias="PROMPT_TEMPLATE_ID")

    # Extraction cache
    cache_backend: str = Field("memory", alias="CACHE_BACKEND")  # memory | sqlite
    cache_db_path: str = Field("extraction_cache.db", alias="CACHE_DB_PATH")
    cache_ttl_seconds: int = Field(3600, alias="CACHE_TTL_SECONDS")
    cache_sweep_interval_seconds: float = Field(60.0, alias="CACHE_SWEEP_INTERVAL_SECONDS")

    # Supplier store
    supplier_store: str = Field("memory", alias="SUPPLIER_STORE")  # memory | sqlite
    supplier_db_path: str = Field("suppliers.db", alias="SUPPLIER_DB_PATH")

    # Pattern extraction
    default_currency: str = Field("USD", alias="DEFAULT_CURRENCY")

    # CORS allowed origins (comma-separated list)
    cors_origins: str = Field("http://localhost:3000,http://127.0.0.1:3000", alias="CORS_ORIGINS")

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

settings = Settings()
