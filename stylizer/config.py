"""Application configuration via environment variables."""

from typing import List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Artifact storage
    upload_dir: str = "uploads"
    public_prefix: str = "/uploads"
    max_upload_bytes: int = 10 * 1024 * 1024
    allowed_content_types: List[str] = ["image/jpeg", "image/png"]

    # Transformation provider: "simulated", "replicate" or "openai"
    provider: str = "simulated"

    # Job processing
    poll_interval_seconds: float = 5.0
    max_poll_attempts: int = 60
    simulated_pending_polls: int = 0

    # Replicate (only when provider=replicate)
    replicate_api_token: Optional[str] = None
    replicate_model_version: str = "28cea91bdfced0e2dc7fda466cc7a07f7c7917dd86df1b0d8cee4b76c618"
    replicate_base_url: str = "https://api.replicate.com/v1/predictions"

    # OpenAI (only when provider=openai)
    openai_api_key: Optional[str] = None
    openai_image_model: str = "gpt-image-1"
    openai_analysis_model: str = "gpt-4o"

    http_timeout_seconds: float = 60.0

    # Server
    host: str = "0.0.0.0"
    port: int = 5000
    cors_origins: List[str] = ["http://localhost:5173", "http://localhost:3000"]
    log_level: str = "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "env_prefix": "STYLIZER_"}


settings = Settings()
