from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict


# Get the directory where this config.py file is located
_config_dir = Path(__file__).parent
_env_file = _config_dir.parent / ".env"  # services/core/.env


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(_env_file),
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Server
    host: str = "0.0.0.0"
    port: int = 8080
    log_level: str = "INFO"

    # Alpha Vantage
    alphavantage_api_keys: str = ""  # comma-separated, tried in order when rate limited
    alphavantage_base_url: str = "https://www.alphavantage.co/query"
    request_timeout_seconds: float = 30.0

    def get_api_keys(self) -> list[str]:
        """Return configured API keys in rotation order."""
        return [k.strip() for k in self.alphavantage_api_keys.split(",") if k.strip()]


def get_settings() -> Settings:
    return Settings()
