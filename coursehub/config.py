from functools import lru_cache

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="COURSEHUB_", extra="ignore")

    api_base_url: str = "http://localhost:5000/api"
    request_timeout_seconds: float = 20.0
    log_level: str = "INFO"
    log_dir: str = "logs"
    log_file: str = "client.log"
    log_to_console: bool = False


@lru_cache
def get_settings() -> Settings:
    return Settings()
