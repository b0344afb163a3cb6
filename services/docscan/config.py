"""Environment-based configuration for the document capture service."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """DocScan settings, loaded from environment variables."""

    # Server
    PORT: int = 8092

    # Hosted vision model (empty API_KEY = every remote operation fails fast)
    API_KEY: str = ""
    MODEL_API_URL: str = "https://generativelanguage.googleapis.com/v1beta"
    MODEL_ID: str = "gemini-2.5-flash"

    # Model API timeouts (no retries, every retry is a user action)
    MODEL_TIMEOUT_SECONDS: int = 120
    MODEL_CONNECT_TIMEOUT: int = 30

    # Camera capture
    CAMERA_INDEX: int = 0
    CAPTURE_WIDTH: int = 1920
    CAPTURE_HEIGHT: int = 1080
    CAPTURE_JPEG_QUALITY: int = 90

    model_config = {"env_prefix": "", "case_sensitive": True}


settings = Settings()
