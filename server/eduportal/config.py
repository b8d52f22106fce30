from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration settings"""

    # Application
    app_name: str = "Smart Education Portal"
    debug: bool = True
    api_version: str = "v1"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # OpenAI
    openai_api_key: str
    advisor_model: str = "gpt-4o-2024-08-06"
    chat_model: str = "gpt-4o-mini"

    # Chat sessions
    chat_cache_size: int = 256
    chat_cache_ttl_seconds: int = 3600

    # Attendance QR
    qr_freshness_seconds: int = 60
    camera_index: int = 0
    scanner_fps: int = 10

    # CORS
    cors_origins: str = "http://localhost:5173,http://localhost:3000"

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins from comma-separated string"""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"


# Global settings instance
settings = Settings()
