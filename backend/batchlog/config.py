from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", env_prefix="BATCHLOG_")

    # Remote batch API (client side)
    api_url: str = "http://localhost:8080/api"
    request_timeout: float = 10.0

    # Live stream
    reconnect_delay: float = 5.0  # seconds between a transport error and the next attempt
    poll_interval: float = 2.0  # server-side snapshot polling

    # Log view
    page_size: int = 50

    # In-memory capture (server side)
    buffer_size: int = 5000

    # App
    app_name: str = "Batch Log Viewer"
    debug: bool = False

    # CORS - comma-separated list of allowed origins
    cors_origins: str = "http://localhost:4200"

    @model_validator(mode="after")
    def normalize_api_url(self) -> "Settings":
        """Strip the trailing slash so endpoint paths can be appended verbatim."""
        self.api_url = self.api_url.rstrip("/")
        return self


settings = Settings()
