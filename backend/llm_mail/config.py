"""
Configuration management using pydantic-settings
"""
from pathlib import Path
from typing import List, Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


PACKAGE_DIR = Path(__file__).resolve().parent


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # LLM providers
    llm_provider: Literal["openrouter", "anthropic"] = "openrouter"
    openrouter_api_key: Optional[str] = None
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    anthropic_api_key: Optional[str] = None

    # Models (prompt files may override the chat model per prompt)
    chat_model: str = "openai/gpt-4o"
    anthropic_model: str = "claude-sonnet-4-20250514"
    image_model: str = "google/gemini-2.5-flash-image"

    llm_timeout_seconds: float = 120.0
    llm_max_tokens: int = 8192
    # 0 disables retries; otherwise retry OpenRouter calls on 5xx/timeouts
    provider_max_retries: int = 0

    # Prompt definitions
    prompts_dir: Path = PACKAGE_DIR / "prompts"

    # Generated images
    generated_images_dir: Path = Path("generated_images")
    generated_images_url_prefix: str = "/generated-images"

    # Dressipi recommendations
    dressipi_timeout_seconds: float = 15.0
    dressipi_user_agent: str = "LLM-Mail/1.0 (+https://localhost)"

    # Website scanning (settings profile)
    website_scan_timeout_seconds: float = 15.0

    # AWS S3 (optional - generated images go to local disk otherwise)
    aws_s3_bucket: Optional[str] = None
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
    aws_region: str = "us-east-1"
    s3_base_url: Optional[str] = None

    # Application
    base_url: str = "http://localhost:8000"
    cors_origins: str = "http://localhost:5173,http://localhost:3000"
    log_level: str = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # PostgreSQL Configuration
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_db: str = "llm_mail"
    postgres_user: str = "llm_mail"
    postgres_password: str = "llm_mail"

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse comma-separated CORS origins"""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def is_s3_configured(self) -> bool:
        """Check if S3 is properly configured"""
        return all([
            self.aws_s3_bucket,
            self.aws_access_key_id,
            self.aws_secret_access_key,
            self.s3_base_url
        ])

    @property
    def postgres_dsn(self) -> str:
        """Get PostgreSQL connection DSN"""
        return f"postgresql://{self.postgres_user}:{self.postgres_password}@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"


# Global settings instance
settings = Settings()
