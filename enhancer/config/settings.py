from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    db_host: str = "host.docker.internal"
    db_port: int = 5432
    db_database: str = "enhancer"
    db_username: str = "enhancer"
    db_password: str = "secret"
    db_pool_min_size: int = 1
    db_pool_max_size: int = 10

    max_job_attempts: int = 3
    job_poll_interval_seconds: int = 5

    pdf_engine: str = "pymupdf"
    render_dpi: int = 110

    storage_backend: str = "local"
    storage_files_root: str = "/tmp/enhancer-storage"
    storage_base_url: str = ""
    storage_public_url: str = ""
    storage_api_token: str = ""
    storage_timeout_seconds: int = 30

    analysis_provider: str = "openai"
    analysis_openai_api_key: str = ""
    analysis_openai_vision_model_name: str = "gpt-4o"
    analysis_openai_text_model_name: str = "gpt-4o-mini"
    analysis_openai_premium_text_model_name: str = "gpt-4o"
    analysis_openai_temperature: float = 0.2
    analysis_openai_timeout_seconds: int = 60
    analysis_openai_compatible_base_url: str = ""
    analysis_openai_compatible_api_key: str = ""
    analysis_openrouter_api_key: str = ""
    analysis_ollama_api_key: str = ""
    analysis_ollama_vision_model_name: str = "llava"
    analysis_ollama_text_model_name: str = "llama3.1"

    image_provider: str = "openai"
    image_openai_api_key: str = ""
    image_openai_timeout_seconds: int = 120

    cache_ttl_seconds: int = 3600
    basic_tier_asset_quota: int = 3
    basic_tier_quota_window_seconds: int = 86400
    planning_max_workers: int = 4
