from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    store_backend: str = "memory"
    reference_timezone: str = "UTC"

    db_host: str = "host.docker.internal"
    db_port: int = 5432
    db_database: str = "loanscan"
    db_username: str = "loanscan"
    db_password: str = "secret"

    uploads_dir: str = "uploads"
    max_upload_size_bytes: int = 10 * 1024 * 1024

    pdf_engine: str = "pymupdf"
    pdf_render_dpi: int = 200
    pdf_max_width: int = 2000
    pdf_max_height: int = 2800
    jpeg_quality: int = 90

    extraction_provider: str = "openai"
    extraction_api_key: str = ""
    extraction_model_name: str = "gpt-4o"
    extraction_base_url: str = ""
    extraction_timeout_seconds: int = 30
    extraction_temperature: float = 0.0
    extraction_max_tokens: int = 1000

    page_extraction_timeout_seconds: float = 60.0
    max_concurrent_pipelines: int = 4
